"""Entry point: python -m modelvault"""

import uvicorn

from .config import settings


def main():
    uvicorn.run(
        "modelvault.main:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
    )


if __name__ == "__main__":
    main()
