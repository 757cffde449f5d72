"""
app.py -- FastAPI application for the memory jar.

Runs on JAR_PORT (default 3002). One jar per process, owned by JAR_USER_ID.
Local storage is the source of truth; the Supabase mirror is best effort.
Every response uses the {success, data, error} envelope.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from jar.config import Settings
from jar.errors import JarError
from jar.models import FREEFORM, PROMPTS, VALID_EMOTIONS, AudioClip
from jar.pipeline import MemoryJar
from jar.plans import is_valid_plan, plan_catalogue
from jar.search import autoplay_target
from jar.tagging import derive_mood
from storyteller.composer import StoryComposer
from storyteller.wiring import build_jar

load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("memory_jar")

MAX_AUDIO_BYTES: int = 10 * 1024 * 1024


class JarResponse(BaseModel):
    """Standard API response envelope."""
    success: bool
    data: Any = None
    error: str | None = None


class HealthResponse(BaseModel):
    success: bool
    version: str = "0.1.0"


class ViewRequest(BaseModel):
    view: str


class SelectionRequest(BaseModel):
    memoryIds: list[str] = Field(default_factory=list)


class StoryRequest(BaseModel):
    memoryIds: list[str] = Field(default_factory=list)
    voiceNarration: bool = False


class BlockchainRequest(BaseModel):
    tx: str = Field(..., min_length=1)


class InviteRequest(BaseModel):
    name: str = ""
    email: str = Field(..., min_length=3)
    accessLevel: str = "viewer"


class AccessRequest(BaseModel):
    accessLevel: str | None = Field(default=None, description="Omit to toggle viewer/contributor")


class PlanRequest(BaseModel):
    plan: str


def _dump(item: BaseModel) -> dict[str, Any]:
    return item.model_dump(mode="json")


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    claude_client: Optional[Any] = None,
) -> FastAPI:
    """Build the service. Tests pass their own settings and clients."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage the HTTP client and the jar lifecycle."""
        settings.media_dir.mkdir(parents=True, exist_ok=True)
        client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        jar, composer = build_jar(settings, client, claude_client)
        app.state.jar = jar
        app.state.composer = composer
        logger.info(
            "Memory jar started (user=%s, plan=%s, memories=%d)",
            settings.user_id, jar.state.plan, len(jar.memories),
        )
        yield
        await jar.persistence.drain()
        if http_client is None:
            await client.aclose()
        logger.info("Memory jar shut down")

    app = FastAPI(
        title="Memory Jar",
        description="Voice memories, tagged and woven into family stories",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/media", StaticFiles(directory=settings.media_dir, check_dir=False), name="media")

    @app.exception_handler(JarError)
    async def jar_error_handler(request: Request, exc: JarError) -> JSONResponse:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=JarResponse(success=False, error=str(exc)).model_dump(),
        )

    def jar_of(request: Request) -> MemoryJar:
        return request.app.state.jar

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(success=True)

    @app.get("/state", response_model=JarResponse)
    async def get_state(request: Request) -> JarResponse:
        return JarResponse(success=True, data=_dump(jar_of(request).state))

    @app.post("/state/view", response_model=JarResponse)
    async def navigate(body: ViewRequest, request: Request) -> JarResponse:
        state = jar_of(request).state
        try:
            state.navigate(body.view)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        return JarResponse(success=True, data=_dump(state))

    @app.put("/state/selection", response_model=JarResponse)
    async def select_memories(body: SelectionRequest, request: Request) -> JarResponse:
        jar = jar_of(request)
        jar.state.selected_memory_ids = [m.id for m in jar.memories.by_ids(body.memoryIds)]
        return JarResponse(success=True, data=_dump(jar.state))

    @app.get("/emotions", response_model=JarResponse)
    async def list_emotions() -> JarResponse:
        """List the six emotions with their mood and recording prompts."""
        emotions = [
            {"emotion": e, "mood": derive_mood(e), "prompts": PROMPTS.get(e, [])}
            for e in VALID_EMOTIONS
        ]
        return JarResponse(success=True, data={"emotions": emotions, "freeform": FREEFORM})

    @app.post("/memories", response_model=JarResponse)
    async def record_memory(
        request: Request,
        audio: UploadFile = File(...),
        emotion: str = Form(...),
        prompt: str | None = Form(default=None),
        audio_ref: str | None = Form(default=None),
    ) -> JarResponse:
        """Transcribe an uploaded recording and store it as a memory."""
        content = await audio.read()
        if not content:
            raise HTTPException(status_code=400, detail="No audio received")
        if len(content) > MAX_AUDIO_BYTES:
            raise HTTPException(status_code=413, detail="Recording exceeds 10 MB limit")
        clip = AudioClip(
            data=content,
            content_type=audio.content_type or "audio/wav",
            filename=os.path.basename(audio.filename or "memory.wav"),
            audio_ref=audio_ref or None,
        )
        record = await jar_of(request).record(clip, emotion, prompt)
        return JarResponse(success=True, data=_dump(record))

    @app.get("/memories", response_model=JarResponse)
    async def list_memories(request: Request) -> JarResponse:
        jar = jar_of(request)
        memories = [_dump(m) for m in jar.memories.all()]
        limit = None if jar.is_premium() else jar.memories.free_limit
        return JarResponse(success=True, data={"memories": memories, "total": len(memories), "limit": limit})

    @app.get("/memories/search", response_model=JarResponse)
    async def search_memories(q: str, request: Request) -> JarResponse:
        """Text or spoken-command search. "play ..." with one match returns its audio."""
        results = jar_of(request).search(q)
        return JarResponse(
            success=True,
            data={
                "query": q,
                "results": [_dump(m) for m in results],
                "autoplay": autoplay_target(q, results),
            },
        )

    @app.get("/memories/{memory_id}/share", response_model=JarResponse)
    async def share_memory(memory_id: str, request: Request) -> JarResponse:
        url = jar_of(request).share_url(memory_id)
        if url is None:
            raise HTTPException(status_code=404, detail="Memory not found")
        return JarResponse(success=True, data={"url": url})

    @app.put("/memories/{memory_id}/blockchain", response_model=JarResponse)
    async def attach_blockchain(memory_id: str, body: BlockchainRequest, request: Request) -> JarResponse:
        record = jar_of(request).memories.attach_blockchain_tx(memory_id, body.tx)
        return JarResponse(success=True, data=_dump(record))

    @app.post("/stories", response_model=JarResponse)
    async def compose_story(body: StoryRequest, request: Request) -> JarResponse:
        composer: StoryComposer = request.app.state.composer
        story = await composer.compose(body.memoryIds, voice_narration=body.voiceNarration)
        return JarResponse(success=True, data=_dump(story))

    @app.get("/stories", response_model=JarResponse)
    async def list_stories(request: Request) -> JarResponse:
        stories = [_dump(s) for s in jar_of(request).stories.all()]
        return JarResponse(success=True, data={"stories": stories, "total": len(stories)})

    @app.post("/stories/{story_id}/narration", response_model=JarResponse)
    async def narrate_story(story_id: str, request: Request) -> JarResponse:
        composer: StoryComposer = request.app.state.composer
        story = await composer.narrate(story_id)
        return JarResponse(success=True, data=_dump(story))

    @app.get("/family", response_model=JarResponse)
    async def list_family(request: Request) -> JarResponse:
        members = [_dump(m) for m in jar_of(request).family.all()]
        return JarResponse(success=True, data={"members": members, "total": len(members)})

    @app.post("/family", response_model=JarResponse)
    async def invite_family(body: InviteRequest, request: Request) -> JarResponse:
        member = jar_of(request).family.invite(body.name, body.email, body.accessLevel)
        return JarResponse(success=True, data=_dump(member))

    @app.patch("/family/{member_id}", response_model=JarResponse)
    async def change_access(member_id: str, body: AccessRequest, request: Request) -> JarResponse:
        family = jar_of(request).family
        if body.accessLevel is None:
            member = family.toggle_access(member_id)
        else:
            member = family.set_access(member_id, body.accessLevel)
        return JarResponse(success=True, data=_dump(member))

    @app.get("/plans", response_model=JarResponse)
    async def list_plans(request: Request) -> JarResponse:
        jar = jar_of(request)
        plans = plan_catalogue(jar.settings.free_memory_limit, jar.settings.free_family_limit)
        return JarResponse(success=True, data={"plans": plans, "current": jar.state.plan})

    @app.put("/account/plan", response_model=JarResponse)
    async def set_plan(body: PlanRequest, request: Request) -> JarResponse:
        """Record the plan confirmed by the billing provider."""
        if not is_valid_plan(body.plan):
            raise HTTPException(status_code=422, detail=f"Unknown plan: {body.plan}")
        jar = jar_of(request)
        jar.set_plan(body.plan)
        return JarResponse(success=True, data=_dump(jar.state))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("JAR_PORT", "3002"))
    uvicorn.run("storyteller.app:app", host="0.0.0.0", port=port, reload=True)
