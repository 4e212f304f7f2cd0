"""Allow running PomoTrack as a module: python -m pomotrack."""

from .cli import app


def main() -> None:
    app(prog_name="pomotrack")


if __name__ == "__main__":
    main()
