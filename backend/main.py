"""Development entry point: ``python backend/main.py`` from the repo root."""

import os

import uvicorn
from dotenv import load_dotenv

# Before uvicorn imports the app so Settings sees the .env values
load_dotenv()


def run() -> None:
    uvicorn.run(
        "fulfillment.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "0") == "1",
        workers=int(os.getenv("UVICORN_WORKERS", "1")),
        timeout_keep_alive=int(os.getenv("UVICORN_KEEPALIVE", "65")),
    )


if __name__ == "__main__":
    run()
