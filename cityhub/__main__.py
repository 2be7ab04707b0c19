"""
Run the API with uvicorn: ``python -m cityhub``.
"""

import uvicorn

from cityhub.app import create_app
from cityhub.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
