from __future__ import annotations

from aideo.config import load_settings


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run("aideo.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
