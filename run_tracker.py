import asyncio

from src.config import get_settings
from src.tracker.shell import build_orchestrator, run_shell


def main() -> None:
    """Run the terminal IP tracker against the relay configured by RELAY_URL."""
    orchestrator = build_orchestrator(get_settings())
    try:
        asyncio.run(run_shell(orchestrator))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
