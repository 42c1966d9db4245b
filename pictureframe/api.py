from __future__ import annotations

import logging

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from .catalog import scan
from .config import FrameConfig
from .controller import DisplayController
from .errors import ConfigError, PictureError, PinError
from .library import delete_picture, list_pictures, save_picture
from .render import Renderer, create_renderer
from .settings import PartialSettings
from .store import SettingsStore, apply_partial, load_store, pin, unpin

logger = logging.getLogger(__name__)


class SettingsPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    display_enabled: bool | None = None
    rotate_interval_secs: int | None = Field(default=None, ge=0)
    shuffle: bool | None = None
    pinned_image: str | None = None


class PinRequest(BaseModel):
    filename: str


def create_app(
    config: FrameConfig,
    store: SettingsStore | None = None,
    renderer: Renderer | None = None,
    display: bool = True,
) -> FastAPI:
    config.ensure_dirs()
    store = store or load_store(config.settings_file)

    app = FastAPI(title="Picture Frame")
    app.state.config = config
    app.state.store = store
    app.state.controller = None

    @app.on_event("startup")
    async def startup_event() -> None:
        if not display:
            return
        controller = DisplayController.from_config(config, store, renderer or create_renderer(config))
        controller.start()
        app.state.controller = controller

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if app.state.controller is not None:
            await app.state.controller.stop()
            app.state.controller = None

    @app.get("/api/settings")
    async def get_settings():
        return store.get().to_dict()

    @app.patch("/api/settings")
    async def patch_settings(patch: SettingsPatch):
        fields = patch.model_dump(exclude_unset=True)
        pinned = fields.get("pinned_image")
        if pinned and scan(config.image_dir).index_of(pinned) is None:
            raise HTTPException(status_code=404, detail=f"Picture not found: {pinned}")
        try:
            updated = apply_partial(store, PartialSettings.from_fields(**fields))
        except ConfigError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except OSError:
            logger.exception("failed to persist settings")
            raise HTTPException(status_code=500, detail="Failed to save settings")
        return updated.to_dict()

    @app.put("/api/settings/pin")
    async def pin_route(request: PinRequest):
        try:
            updated = pin(store, request.filename, scan(config.image_dir))
        except PinError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        except OSError:
            logger.exception("failed to persist settings")
            raise HTTPException(status_code=500, detail="Failed to save settings")
        return updated.to_dict()

    @app.delete("/api/settings/pin")
    async def unpin_any_route():
        try:
            updated = unpin(store)
        except OSError:
            logger.exception("failed to persist settings")
            raise HTTPException(status_code=500, detail="Failed to save settings")
        return updated.to_dict()

    @app.delete("/api/settings/pin/{filename}")
    async def unpin_route(filename: str):
        try:
            updated = unpin(store, filename)
        except PinError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        except OSError:
            logger.exception("failed to persist settings")
            raise HTTPException(status_code=500, detail="Failed to save settings")
        return updated.to_dict()

    @app.get("/api/pictures")
    async def pictures_route():
        return {"pictures": list_pictures(config.image_dir)}

    @app.post("/api/pictures", status_code=201)
    async def upload_picture(file: UploadFile | None = File(default=None)):
        if file is None or not file.filename:
            raise HTTPException(status_code=400, detail="No file was uploaded")
        try:
            saved = save_picture(config.image_dir, file.filename, file.file)
        except PictureError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"filename": saved.name}

    @app.delete("/api/pictures/{filename}", status_code=204)
    async def delete_picture_route(filename: str):
        try:
            delete_picture(config.image_dir, filename)
        except PictureError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return Response(status_code=204)

    return app
