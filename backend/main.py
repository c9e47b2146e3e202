import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ai_client import AIGenerationClient
from config import Settings, get_settings
from content import describe_upload
from database import SqliteTaskRepository, init_db
from dates import format_date_for_display, is_iso_date
from errors import ContentExtractionError, InvalidInput, StorageFailure, TaskNotFound
from fallback import FallbackGenerator
from logging_setup import setup_logging
from models import TaskCreate, TaskUpdate
from pipeline import GenerationPipeline, GenerationRequest
from store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter()


def build_pipeline(settings: Settings) -> GenerationPipeline:
    """Wire the generation pipeline; without a credential it never touches the network."""
    if not settings.llm_configured:
        logger.warning("No LLM API key configured, generation will use fallback tasks")
        return GenerationPipeline(client=None, fallback=FallbackGenerator())
    return GenerationPipeline(client=AIGenerationClient.from_settings(settings), fallback=FallbackGenerator())


def get_store(request: Request) -> TaskStore:
    return request.app.state.store


def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


def _require_date(value: str) -> str:
    if not is_iso_date(value):
        raise InvalidInput(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return value


@router.get("/tasks")
def get_tasks(store: TaskStore = Depends(get_store)) -> list[dict]:
    return [task.to_json() for task in store.all()]


@router.get("/tasks/for-date")
def get_tasks_for_date(date: str = Query(...), store: TaskStore = Depends(get_store)) -> list[dict]:
    """Tasks occurring on a date: one-off tasks on that date plus matching recurring tasks."""
    return [task.to_json() for task in store.tasks_for_date(_require_date(date))]


@router.post("/tasks")
def create_task(task_data: TaskCreate, store: TaskStore = Depends(get_store)) -> dict:
    return store.create(task_data).to_json()


@router.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate, store: TaskStore = Depends(get_store)) -> dict:
    return store.update(task_id, task_data.changes()).to_json()


@router.post("/tasks/{task_id}/toggle")
def toggle_task(task_id: str, store: TaskStore = Depends(get_store)) -> dict:
    return store.toggle_completed(task_id).to_json()


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, store: TaskStore = Depends(get_store)) -> dict:
    store.delete(task_id)
    return {"status": "deleted"}


@router.delete("/tasks")
def delete_tasks_for_date(date: str = Query(...), store: TaskStore = Depends(get_store)) -> dict:
    """Delete every task occurring on a date, recurring tasks included."""
    removed = store.delete_for_date(_require_date(date))
    count = len(removed)
    label = format_date_for_display(date)
    if count == 0:
        message = f"No tasks to delete for {label}"
    else:
        message = f"Deleted {count} task{'s' if count != 1 else ''} for {label}"
    return {"deleted": count, "ids": [task.id for task in removed], "message": message}


@router.get("/stats/completed")
def completed_stats(date: str = Query(...), store: TaskStore = Depends(get_store)) -> dict:
    date = _require_date(date)
    return {"date": date, "completed": store.completed_count_for_date(date)}


@router.post("/api/ai-generate-tasks")
async def ai_generate_tasks(
    desc: Optional[str] = Form(None),
    sheet: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    save: bool = Form(False),
    store: TaskStore = Depends(get_store),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """
    Turn a description, an uploaded file or a sheet into scheduled tasks.

    Responds {tasks} or {tasks, warning} when fallback tasks were used;
    with save=true the tasks are also appended to the task list.
    """
    file_text = None
    if file is not None and file.filename:
        file_text = describe_upload(file.filename, file.content_type, await file.read())

    result = await pipeline.generate(GenerationRequest(free_text=desc, file_text=file_text, sheet_text=sheet))
    body = result.to_json()
    if save:
        body["tasks"] = [task.to_json() for task in store.add_drafts(result.tasks)]
    return body


def _error(status_code: int):
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s: %s", exc.__class__.__name__, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})
    return handler


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TaskStore] = None,
    pipeline: Optional[GenerationPipeline] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    The task store and the pipeline are created at startup (or injected,
    for tests) and live on app.state.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if store is None:
            init_db(settings.database_path)
            app.state.store = TaskStore(SqliteTaskRepository(settings.database_path))
            app.state.store.load()
        else:
            app.state.store = store
        app.state.pipeline = pipeline or build_pipeline(settings)
        yield
        # Shutdown (nothing to do)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInput, _error(400))
    app.add_exception_handler(ValueError, _error(400))
    app.add_exception_handler(TaskNotFound, _error(404))
    app.add_exception_handler(ValidationError, _error(422))
    app.add_exception_handler(StorageFailure, _error(500))
    app.add_exception_handler(ContentExtractionError, _error(500))

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    run()
