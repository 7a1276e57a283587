import uvicorn

from ridehail.settings import settings


def main() -> None:
    uvicorn.run("ridehail.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
