import os

from fastapi import APIRouter, FastAPI

from .routes import form


def create_app(config_obj=None, schema=None) -> FastAPI:
    from ..config import Config
    from ..consts import API_PREFIX
    from ..schema import resolve_schema

    if config_obj is None:
        config_obj = Config.load_from_file(os.environ.get("CONFIG_FILE"))

    if schema is None:
        schema = resolve_schema(config_obj.form.schema_file)

    app = FastAPI(title="crform API")

    app.state.config = config_obj
    app.state.schema = schema

    api_router = APIRouter(prefix=API_PREFIX)
    api_router.include_router(form.router)
    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
