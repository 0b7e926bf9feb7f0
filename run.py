import os
import subprocess
import sys

from dishguard.core.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger("run")

def run():
    port = os.getenv("PORT", "8000")
    logger.info("🚀 Starting Dish Safety API...")
    logger.info(f"➡️  Uvicorn on http://localhost:{port} (docs at /docs)")

    backend = subprocess.Popen(
        ["uvicorn", "dishguard.main:app", "--reload", "--port", port],
        stdout=sys.stdout,
        stderr=sys.stderr
    )

    try:
        backend.wait()
    except KeyboardInterrupt:
        logger.info("🛑 Stopping API...")
        backend.terminate()
        logger.info("Done.")

if __name__ == "__main__":
    run()
