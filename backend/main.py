from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from config import Settings
from database import make_engine, make_sessionmaker
from errors import register_error_handlers
from routes import states


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    engine = engine or make_engine(settings)

    app = FastAPI(title="States Service")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_sessionmaker(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(states.router)

    @app.get("/")
    def home():
        return {"message": "Backend running"}

    return app


app = create_app()
