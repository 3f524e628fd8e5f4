"""Blogify entrypoint.

Run with:
  python -m blogify
"""

import os
import uvicorn

from blogify.config import env_bool


def main() -> None:
    host = os.getenv("BLOGIFY_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = env_bool("BLOGIFY_RELOAD")
    uvicorn.run("blogify.app:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
