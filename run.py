# run.py
import os
import asyncio

from uvicorn.config import Config
from uvicorn.server import Server

from quotation_api.main import app


# ==== запуск API котировок ====
async def run_uvicorn() -> None:
    port = int(os.environ.get("PORT", "10000"))
    config = Config(
        app=app,
        host="0.0.0.0",
        port=port,
        log_level="info",
        # один процесс: ReservationLocks не разделяются между воркерами
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    asyncio.run(run_uvicorn())
