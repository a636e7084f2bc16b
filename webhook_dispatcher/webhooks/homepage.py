"""Static informational page served on ``GET /``."""

HOMEPAGE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Webhook Dispatcher</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            max-width: 800px;
            margin: 50px auto;
            padding: 20px;
            line-height: 1.6;
            color: #333;
        }
        h1 { color: #2c3e50; }
        .status {
            background-color: #d4edda;
            border: 1px solid #c3e6cb;
            color: #155724;
            padding: 12px;
            border-radius: 4px;
            margin-top: 20px;
        }
        code { background: #f4f4f4; padding: 2px 4px; }
    </style>
</head>
<body>
    <h1>Webhook Dispatcher</h1>
    <p>Send a JSON body to any path. Each payload is stored and, when a
    dispatch rule matches the path, forwarded to the configured targets.</p>
    <p>Example: <code>curl -X POST -d '{"hello": "world"}' http://HOST/my/hook</code></p>
    <div class="status">
        <strong>Status:</strong> Service is running and ready to receive webhooks
    </div>
</body>
</html>
"""
