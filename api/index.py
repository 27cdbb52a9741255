import os
import sys

# Add ROOT to sys.path so the 'lenglogs' package is importable on Vercel
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.append(root_dir)

try:
    from lenglogs.app import create_app
    app = create_app()

except Exception as e:
    # Boot diagnostics: a missing env var would otherwise surface as an opaque 500
    from flask import Flask
    import traceback
    boot_error = str(e)
    boot_traceback = traceback.format_exc()
    app = Flask(__name__)

    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def catch_all(path):
        return f"""
        <html>
        <head><title>Boot Error</title></head>
        <body style="font-family: monospace; padding: 20px;">
            <h1 style="color: red;">LengLogs could not start</h1>
            <h3>Exception:</h3>
            <pre style="background: #eee; padding: 10px;">{boot_error}</pre>
            <h3>Traceback:</h3>
            <pre style="background: #eee; padding: 10px;">{boot_traceback}</pre>
        </body>
        </html>
        """, 500
