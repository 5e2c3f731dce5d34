import uvicorn

from app.core.app_factory import create_app
from app.core.config import settings

app = create_app()


def run() -> None:
    """Serve the app on the configured host/port."""
    uvicorn.run(app, host=settings.app.host, port=settings.app.port, access_log=False)


if __name__ == "__main__":
    run()
