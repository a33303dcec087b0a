import logging

from fastapi import Depends, FastAPI, Form, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from auth import check_credentials, create_access_token
from config import Settings, get_settings, setup_logging
from routers.v2 import router as v2_router
from services.desired_state import DesiredStateStore

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Service Panel")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # in production limit to the frontend domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # requested actions live here for the lifetime of the process
    app.state.desired_states = DesiredStateStore()

    app.include_router(v2_router)

    @app.post("/api/login")
    async def login_for_access_token(
        username: str = Form(...),
        password: str = Form(...),
        settings: Settings = Depends(get_settings),
    ):
        if not check_credentials(username, password, settings):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect username or password",
            )
        access_token = create_access_token(data={"sub": username}, settings=settings)
        return {"access_token": access_token, "token_type": "bearer"}

    @app.get("/healthz")
    def health_check():
        """
        Health check for external monitoring.
        """
        return {"status": "ok"}

    log.info("services config: %s", settings.services_config_path)
    return app


app = create_app()
