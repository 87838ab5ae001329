"""Command-line entry point: serve the app with uvicorn."""

import uvicorn

from pinvid.config import load_config


def main() -> None:
    config = load_config()
    uvicorn.run(
        "pinvid.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
