import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run("mediastore.main:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    main()
