import os
import logging

import uvicorn
from dotenv import load_dotenv


def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    uvicorn.run(
        "app.backend.api_main:app",
        host=os.getenv("GESTU_HOST", "127.0.0.1"),
        port=int(os.getenv("GESTU_PORT", "8000")),
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("Exit")
