import uvicorn

from sweet_kiosk.api import create_app
from sweet_kiosk.config import configure_logging, get_settings


def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
