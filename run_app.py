import os

import uvicorn

from src.logger import log_config


def main() -> None:
    """Run the relay with uvicorn (RELAY_HOST/RELAY_PORT override the bind address)."""
    uvicorn.run(
        "src.main:app",
        host=os.getenv("RELAY_HOST", "127.0.0.1"),
        port=int(os.getenv("RELAY_PORT", "8000")),
        reload=True,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
