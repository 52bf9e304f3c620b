"""
Root entrypoint — run with:
    uvicorn main:app --reload
    or:  uv run uvicorn main:app --reload
"""

from gatekeeper.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    from gatekeeper.core.config import settings

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
