import os

from dotenv import load_dotenv

# Load environment variables from .env file BEFORE importing socgate
load_dotenv()

from socgate import create_app


def main():
    """Main entry point for local development."""
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", "false").lower() in ("true", "1", "yes")

    app = create_app()

    print(f"Starting publishing gateway on {host}:{port} (debug={debug})")

    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
