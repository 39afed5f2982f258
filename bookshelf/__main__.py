import uvicorn

from .config import Config


def main() -> None:
    config = Config()
    uvicorn.run(
        "bookshelf.main:create_app",
        factory=True,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
