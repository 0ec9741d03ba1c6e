"""
Run the API with uvicorn: ``python -m tracker_sms``.

uvicorn handles SIGINT/SIGTERM: it stops accepting connections, waits up to
SHUTDOWN_TIMEOUT_SECONDS for in-flight requests, then runs the lifespan
shutdown that drains the database pool.
"""

import uvicorn

from tracker_sms.config import settings


def run() -> None:
    uvicorn.run(
        "tracker_sms.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        timeout_graceful_shutdown=settings.SHUTDOWN_TIMEOUT_SECONDS,
    )


if __name__ == "__main__":
    run()
