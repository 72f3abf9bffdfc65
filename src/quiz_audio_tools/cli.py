from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from . import __version__
from .config import Settings
from .content import CONTENT_KINDS
from .db import Database, pool_size_for
from .maintenance import clear_audio, clear_quiz_questions, find_pending_markers, update_stories
from .pipelines import PipelineRunner
from .processor import ItemProcessor
from .storage import S3Storage, make_s3_client
from .tts import ElevenLabsEngine

logger = logging.getLogger("quiz_audio_tools")

app = typer.Typer(help="Generate narration audio for quiz and flashcard content.", add_completion=False)


class Script(str, Enum):
    flashcards_questions = "flashcards/questions"
    flashcards_responses = "flashcards/responses"
    quizzes_feedbacks = "quizzes/feedbacks"
    quizzes_questions = "quizzes/questions"
    all = "all"
    update_stories = "update/stories"
    clear_audio = "clear/audio"
    clear_quiz_questions = "clear/quizzes/questions"
    audit_processing = "audit/processing"


SCRIPTS_WITHOUT_LEVEL = (Script.update_stories, Script.clear_audio, Script.audit_processing)
_KINDS_BY_SCRIPT = {kind.name: kind for kind in CONTENT_KINDS}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open_database(settings: Settings) -> Database:
    # psycopg2 pools raise instead of waiting, so every item of every concurrent kind needs a slot.
    maxconn = max(settings.pg_pool_max, pool_size_for(settings.chunk_size, len(CONTENT_KINDS)))
    return Database.connect(
        database=settings.pg_database,
        user=settings.pg_user,
        password=settings.pg_password,
        host=settings.pg_host,
        port=settings.pg_port,
        maxconn=maxconn,
    )


def _make_storage(settings: Settings) -> S3Storage:
    client = make_s3_client(settings.aws_region, settings.aws_access_key, settings.aws_secret_key)
    return S3Storage(settings.aws_bucket, region=settings.aws_region, s3_client=client)


def _make_runner(settings: Settings, database: Database, storage: S3Storage) -> PipelineRunner:
    engine = ElevenLabsEngine(
        settings.elevenlabs_api_key,
        base_url=settings.elevenlabs_api_url,
        timeout=settings.tts_timeout,
    )

    def processor_factory(kind):
        return ItemProcessor(kind, database, engine, storage, key_root=settings.audio_key_root)

    return PipelineRunner(
        database,
        processor_factory,
        chunk_size=settings.chunk_size,
        batch_delay=settings.batch_delay,
    )


def _confirm(prompt: str) -> bool:
    return typer.confirm(prompt, default=False)


def _run(script: Script, level: Optional[str], subject: Optional[str], stories_file: Path) -> None:
    settings = Settings.from_env()
    storage = _make_storage(settings)
    if script is Script.update_stories:
        update_stories(storage, stories_file)
        typer.echo("The stories have been updated successfully")
        return

    database = _open_database(settings)
    try:
        if script is Script.clear_audio:
            report = clear_audio(database, storage, _confirm)
            if report.cancelled:
                typer.echo("Operation cancelled")
            else:
                typer.echo(f"Deleted from S3: {report.deleted_from_storage}; remaining: {report.remaining}")
        elif script is Script.clear_quiz_questions:
            report = clear_quiz_questions(database, level, subject, _confirm)
            typer.echo("Operation cancelled" if report.cancelled else f"Quiz questions cleared: {report.cleared}")
        elif script is Script.audit_processing:
            pending = find_pending_markers(database)
            for name, count in pending.items():
                typer.echo(f"{name}: {count}")
        elif script is Script.all:
            results = _make_runner(settings, database, storage).run_all(level, subject)
            for name, records in results.items():
                typer.echo(f"{name}: {len(records)} narrated")
        else:
            kind = _KINDS_BY_SCRIPT[script.value]
            records = _make_runner(settings, database, storage).run(kind, level, subject)
            typer.echo(f"{kind.name}: {len(records)} narrated")
    finally:
        database.close()


@app.command()
def main(
    script_name: str = typer.Option(
        ..., "--script", "-s", help="Script to run: " + ", ".join(s.value for s in Script)
    ),
    level: Optional[str] = typer.Option(None, "--level", help="Level name, required by the content scripts"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Restrict to one subject title"),
    stories_file: Path = typer.Option(Path("stories.json"), "--stories-file", dir_okay=False),
    env_file: Path = typer.Option(Path(".env"), "--env-file", exists=False, help="Environment file to load"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Run one narration or maintenance script."""
    load_dotenv(env_file, override=True)
    _configure_logging(verbose)
    try:
        script = Script(script_name)
    except ValueError:
        valid = ", ".join(s.value for s in Script)
        typer.echo(f"Error: invalid script {script_name!r}. Valid options: {valid}", err=True)
        raise typer.Exit(code=1)
    logger.info("quiz-audio %s running %s", __version__, script.value)

    if script not in SCRIPTS_WITHOUT_LEVEL and not level:
        typer.echo("Error: --level is required for this script", err=True)
        raise typer.Exit(code=1)

    try:
        _run(script, level, subject, stories_file)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Script completed successfully")


def run():
    app()


if __name__ == "__main__":
    run()
