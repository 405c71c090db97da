"""Command-line interface for ai-nexus."""

from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Config, load_config, set_config
from .exceptions import AINexusError
from .models import Character, EmbeddingConfig, Message, MessageRole, ScoredChunk, Source
from .orchestrator import ChatOrchestrator
from .providers.config_models import ChatProviderConfig, ImageProviderConfig
from .rag import HttpEmbeddingClient, RAGService, build_vector_store
from .utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="ai-nexus",
    help="Character chat, knowledge-base indexing, and media generation.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to config.yaml", exists=True),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
]
EmbeddingServiceOption = Annotated[
    str,
    typer.Option("--embedding-service", help="gemini or openai (OpenAI-compatible/Ollama)"),
]
EmbeddingModelOption = Annotated[
    str,
    typer.Option("--embedding-model", help="Embedding model name"),
]
EmbeddingEndpointOption = Annotated[
    str | None,
    typer.Option(
        "--embedding-endpoint",
        help="Embedding endpoint, e.g. http://localhost:11434/api/embeddings",
    ),
]
EmbeddingKeyOption = Annotated[
    str | None,
    typer.Option("--embedding-key", help="Embedding API key", envvar="EMBEDDING_API_KEY"),
]


def _setup(config_path: Path | None, log_level: str | None) -> tuple[Config, Any]:
    try:
        config = load_config(config_path)
    except AINexusError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    set_config(config)
    configure_logging(log_level or config.log_level, log_dir=config.log_dir)
    return config, get_logger(__name__)


def _embedding_config(
    service: str, model: str, endpoint: str | None, key: str | None
) -> EmbeddingConfig:
    return EmbeddingConfig(service=service, model=model, api_endpoint=endpoint, api_key=key)


def _load_character(path: Path | None) -> Character:
    if path is None:
        return Character(id="assistant", name="Assistant", personality="A helpful assistant.")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Character.model_validate(data)


def _rag_service(config: Config, embedding_client: HttpEmbeddingClient) -> RAGService:
    return RAGService.from_config(
        config,
        embedding_client=embedding_client,
        vector_store=build_vector_store(config),
    )


@app.command("index")
def index_file(
    file: Annotated[Path, typer.Argument(help="Text document to index", exists=True)],
    embedding_service: EmbeddingServiceOption = "gemini",
    embedding_model: EmbeddingModelOption = "text-embedding-004",
    embedding_endpoint: EmbeddingEndpointOption = None,
    embedding_key: EmbeddingKeyOption = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Chunk, embed, and store a document in the knowledge base."""
    config, logger = _setup(config_path, log_level)
    embedding = _embedding_config(
        embedding_service, embedding_model, embedding_endpoint, embedding_key
    )

    def show_progress(message: str) -> None:
        console.print(f"[dim]{escape(message)}[/dim]")

    async def run() -> Source:
        embedding_client = HttpEmbeddingClient(config)
        try:
            service = _rag_service(config, embedding_client)
            return await service.process_and_index_file(
                file, embedding, on_progress=show_progress
            )
        finally:
            await embedding_client.aclose()

    try:
        source = asyncio.run(run())
    except AINexusError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.error("cli_index_failed", file=str(file), **e.to_dict())
        raise typer.Exit(1) from e

    console.print(f"[green]Indexed[/green] {source.file_name}")
    console.print(f"  Source id: [bold]{source.id}[/bold]")


@app.command("delete-source")
def delete_source(
    source_id: Annotated[str, typer.Argument(help="Source id printed by 'index'")],
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Delete every stored chunk of a source."""
    config, logger = _setup(config_path, log_level)

    async def run() -> None:
        embedding_client = HttpEmbeddingClient(config)
        try:
            await _rag_service(config, embedding_client).delete_source(source_id)
        finally:
            await embedding_client.aclose()

    try:
        asyncio.run(run())
    except AINexusError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.error("cli_delete_failed", source_id=source_id, **e.to_dict())
        raise typer.Exit(1) from e
    console.print(f"[green]Deleted[/green] {source_id}")


@app.command("query")
def query_sources(
    query: Annotated[str, typer.Argument(help="Text to search for")],
    source: Annotated[
        list[str],
        typer.Option("--source", "-s", help="Source id to search (repeatable)"),
    ],
    top_k: Annotated[int, typer.Option("--top-k", "-k", min=1)] = 3,
    embedding_service: EmbeddingServiceOption = "gemini",
    embedding_model: EmbeddingModelOption = "text-embedding-004",
    embedding_endpoint: EmbeddingEndpointOption = None,
    embedding_key: EmbeddingKeyOption = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show the best-matching chunks of the given sources."""
    config, logger = _setup(config_path, log_level)
    character = Character(
        id="cli-query",
        name="CLI",
        embedding_config=_embedding_config(
            embedding_service, embedding_model, embedding_endpoint, embedding_key
        ),
        knowledge_source_ids=source,
    )

    async def run() -> list[ScoredChunk]:
        embedding_client = HttpEmbeddingClient(config)
        try:
            return await _rag_service(config, embedding_client).rank_chunks(query, character)
        finally:
            await embedding_client.aclose()

    try:
        ranked = asyncio.run(run())
    except AINexusError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.error("cli_query_failed", **e.to_dict())
        raise typer.Exit(1) from e

    if not ranked:
        console.print("[yellow]No chunks found for the given sources.[/yellow]")
        return

    table = Table(title=f"Top {min(top_k, len(ranked))} of {len(ranked)} chunks")
    table.add_column("Similarity", justify="right")
    table.add_column("Source")
    table.add_column("Content")
    for item in ranked[:top_k]:
        preview = item.chunk.content[:200].replace("\n", " ")
        table.add_row(f"{item.similarity:.4f}", item.chunk.source_id, preview)
    console.print(table)


@app.command("chat")
def chat(
    message: Annotated[str, typer.Argument(help="User message")],
    character_file: Annotated[
        Path | None,
        typer.Option("--character", "-c", help="Character definition (YAML/JSON)", exists=True),
    ] = None,
    service: Annotated[
        str | None,
        typer.Option("--service", help="Override chat service (gemini, openai)"),
    ] = None,
    endpoint: Annotated[
        str | None,
        typer.Option("--endpoint", help="OpenAI-compatible chat completions URL"),
    ] = None,
    model: Annotated[str | None, typer.Option("--model", help="Chat model")] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Send one message to a character and stream the reply."""
    config, _ = _setup(config_path, log_level)
    character = _load_character(character_file)
    if service or endpoint or model:
        current = character.api_config or ChatProviderConfig()
        character.api_config = current.model_copy(
            update={
                key: value
                for key, value in {
                    "service": ChatProviderConfig(service=service).service if service else None,
                    "api_endpoint": endpoint,
                    "model": model,
                }.items()
                if value is not None
            }
        )

    history = [Message(role=MessageRole.USER, content=message)]

    async def run() -> None:
        embedding_client = HttpEmbeddingClient(config) if character.knowledge_source_ids else None
        orchestrator: ChatOrchestrator | None = None
        try:
            rag = _rag_service(config, embedding_client) if embedding_client else None
            orchestrator = ChatOrchestrator(config, rag_service=rag)
            await orchestrator.stream_chat_response(
                character,
                [character],
                history,
                on_chunk=lambda delta: console.print(delta, end="", markup=False),
            )
        finally:
            if orchestrator is not None:
                await orchestrator.aclose()
            if embedding_client is not None:
                await embedding_client.aclose()

    try:
        asyncio.run(run())
    except AINexusError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    console.print()


def _write_image(result: str, output: Path) -> None:
    if result.startswith("data:") and "," in result:
        output.write_bytes(base64.b64decode(result.split(",", 1)[1]))
    else:
        output.write_text(result + "\n", encoding="utf-8")


@app.command("image")
def image(
    prompt: Annotated[str, typer.Argument(help="Image description")],
    service: Annotated[
        str,
        typer.Option(
            "--service",
            help="gemini, openai, imagerouter, pollinations, huggingface, stability, aihorde",
        ),
    ] = "default",
    model: Annotated[str | None, typer.Option("--model")] = None,
    endpoint: Annotated[str | None, typer.Option("--endpoint")] = None,
    api_key: Annotated[
        str | None, typer.Option("--api-key", envvar="IMAGE_API_KEY")
    ] = None,
    style: Annotated[str | None, typer.Option("--style")] = None,
    negative_prompt: Annotated[str | None, typer.Option("--negative-prompt")] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the image here instead of printing"),
    ] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Generate an image with the chosen image service."""
    config, _ = _setup(config_path, log_level)
    settings = ImageProviderConfig(
        service=service,
        model=model,
        api_endpoint=endpoint,
        api_key=api_key,
        style=style,
        negative_prompt=negative_prompt,
    )

    async def run() -> str:
        orchestrator = ChatOrchestrator(config)
        try:
            return await orchestrator.generate_image_from_prompt(prompt, settings)
        finally:
            await orchestrator.aclose()

    try:
        result = asyncio.run(run())
    except AINexusError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if output:
        _write_image(result, output)
        console.print(f"[green]Saved[/green] {output}")
    else:
        console.print(result if len(result) < 200 else f"{result[:200]}...", markup=False)


@app.command("speak")
def speak(
    text: Annotated[str, typer.Argument(help="Text to synthesize")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Raw PCM output file")],
    voice: Annotated[
        str, typer.Option("--voice", help="Puck, Charon, Kore, Fenrir, Zephyr")
    ] = "Puck",
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Synthesize speech to a raw 24kHz 16-bit mono PCM file."""
    config, _ = _setup(config_path, log_level)

    async def run() -> bytes:
        orchestrator = ChatOrchestrator(config)
        try:
            return await orchestrator.generate_speech(text, voice=voice)
        finally:
            await orchestrator.aclose()

    try:
        audio = asyncio.run(run())
    except AINexusError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    output.write_bytes(audio)
    console.print(f"[green]Saved[/green] {len(audio)} bytes to {output}")


@app.command("show-config")
def show_config(
    config_path: ConfigOption = None,
) -> None:
    """Print the effective configuration with secrets redacted."""
    config, _ = _setup(config_path, "WARNING")
    data = config.model_dump(mode="json")
    if data.get("gemini_api_key"):
        data["gemini_api_key"] = "***REDACTED***"
    console.print_json(json.dumps(data))


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
