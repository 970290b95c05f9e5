import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path

from doc_pipeline.config.settings import settings
from doc_pipeline.container import configure_container, container
from doc_pipeline.core.exceptions import PipelineError
from doc_pipeline.core.protocols.reader import TextExtractorProtocol
from doc_pipeline.core.protocols.vector_store import VectorIndexProtocol
from doc_pipeline.core.services.ingest_service import IngestService
from doc_pipeline.core.services.retrieval_service import RetrievalService

logger = logging.getLogger(__name__)

mimetypes.add_type("text/markdown", ".md")
mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx"
)
mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", ".xlsx"
)


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def parse_meta(pairs: list[str]) -> dict[str, str]:
    meta = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got '{pair}'")
        meta[key] = value
    return meta


async def cmd_ingest(args: argparse.Namespace) -> int:
    """Ingest command - index one file."""
    path = Path(args.path)
    metadata = parse_meta(args.meta)
    metadata.setdefault("fileName", path.name)
    metadata["mimeType"] = args.mime_type or guess_mime_type(path)

    service = container.resolve(IngestService)
    result = await service.ingest(
        source_id=args.source_id or path.stem,
        owner_id=args.owner_id,
        data=path.read_bytes(),
        metadata=metadata,
    )
    logger.info(f"Indexed {result.chunk_count} chunks for {result.source_id}")
    return 0


async def cmd_query(args: argparse.Namespace) -> int:
    """Query command - print ranked passages as JSON."""
    service = container.resolve(RetrievalService)
    response = await service.retrieve(args.text, allowed_source_ids=args.source, top_k=args.top_k)
    print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
    return 0 if response.found else 2


async def cmd_delete(args: argparse.Namespace) -> int:
    """Delete command - drop a source's chunks."""
    service = container.resolve(IngestService)
    await service.delete(args.source_id, args.owner_id)
    return 0


async def cmd_extract(args: argparse.Namespace) -> int:
    """Extract command - print extracted text without indexing."""
    path = Path(args.path)
    reader = container.resolve(TextExtractorProtocol)
    print(reader.extract_text(path.read_bytes(), args.mime_type or guess_mime_type(path)))
    return 0


async def run(args: argparse.Namespace) -> int:
    try:
        return await args.handler(args)
    finally:
        store = container.resolve(VectorIndexProtocol)
        aclose = getattr(store, "aclose", None)
        if aclose is not None:
            await aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="doc-pipeline", description="Document RAG pipeline")
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Index a file")
    ingest.add_argument("path")
    ingest.add_argument("--source-id", help="Defaults to the file stem")
    ingest.add_argument("--owner-id", required=True)
    ingest.add_argument("--mime-type", help="Guessed from the extension when omitted")
    ingest.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")
    ingest.set_defaults(handler=cmd_ingest)

    query = commands.add_parser("query", help="Search indexed chunks")
    query.add_argument("text")
    query.add_argument("--source", action="append", help="Restrict to a source id (repeatable)")
    query.add_argument("--top-k", type=int, default=None)
    query.set_defaults(handler=cmd_query)

    delete = commands.add_parser("delete", help="Remove a source's chunks")
    delete.add_argument("source_id")
    delete.add_argument("--owner-id")
    delete.set_defaults(handler=cmd_delete)

    extract = commands.add_parser("extract", help="Print extracted text")
    extract.add_argument("path")
    extract.add_argument("--mime-type")
    extract.set_defaults(handler=cmd_extract)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

    configure_container(settings)
    try:
        return asyncio.run(run(args))
    except PipelineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except argparse.ArgumentTypeError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
