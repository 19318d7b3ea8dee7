# File: backend/run.py
"""Application entry point.

    python run.py            # backend API
    python run.py gateway    # edge gateway
"""
import os
import sys

from dotenv import load_dotenv

# Load environment variables before the config classes read them
load_dotenv()

from campus import create_app, create_gateway_app  # noqa: E402

if __name__ == '__main__':
    config_name = os.getenv('FLASK_ENV', 'development')
    if len(sys.argv) > 1 and sys.argv[1] == 'gateway':
        app = create_gateway_app(config_name)
        default_port = 8080
    else:
        app = create_app(config_name)
        default_port = 5000

    port = int(os.environ.get('PORT', default_port))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = config_name == 'development'

    app.run(host=host, port=port, debug=debug, threaded=True)
