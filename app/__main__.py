from __future__ import annotations

import uvicorn

from app.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    print(
        f"[HTTP][listen] port={settings.PORT} provider={settings.STOCKS_PROVIDER} "
        f"refresh={settings.STOCKS_REFRESH_SECONDS}s",
        flush=True,
    )
    # uvicorn exits non-zero when the port cannot be bound
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        workers=1,
        server_header=False,
    )


if __name__ == "__main__":
    main()
