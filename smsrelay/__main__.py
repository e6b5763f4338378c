import os

import uvicorn

from smsrelay.main import app, log

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    log.info(f"Starting server on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
