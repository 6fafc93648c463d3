import uvicorn

from orderdesk.config import settings
from orderdesk.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run("orderdesk.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
