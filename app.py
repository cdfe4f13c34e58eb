"""Entrypoint: `flask --app app run` or `flask --app app backup status`."""

from src.freight_system.freight_system.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
