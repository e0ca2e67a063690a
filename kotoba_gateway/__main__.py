import uvicorn

from kotoba_gateway.config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("kotoba_gateway.main:app", host=settings.HOST, port=settings.PORT)
