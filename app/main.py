import uvicorn

from app.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the site with uvicorn on port 8080."""
    uvicorn.run("app.main:app", host="0.0.0.0", port=8080, log_config=None)


if __name__ == "__main__":
    run()
