# run.py
import os
import uvicorn
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler("tutor_portal.log")
    ]
)

logger = logging.getLogger(__name__)

def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5100"))

    ssl_options = {}
    if os.path.exists("cert.pem") and os.path.exists("key.pem"):
        ssl_options = {"ssl_certfile": "cert.pem", "ssl_keyfile": "key.pem"}
    else:
        logger.warning("cert.pem/key.pem not found, serving plain HTTP")

    # Start the server
    uvicorn.run(
        "tutor_portal.main:app",
        host=host,
        port=port,
        **ssl_options
    )

if __name__ == "__main__":
    main()
