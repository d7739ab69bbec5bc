import argparse
import asyncio
from pathlib import Path

from docreview.config.settings import Settings
from docreview.logging.logger import Log
from docreview.workflow.orchestrator import WorkflowSession, build_session


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docreview",
        description="Review a technical document against a reference specification.",
    )
    parser.add_argument("document", type=Path, help="document to review (.txt or .pdf)")
    parser.add_argument("reference", type=Path, help="reference specification text or PDF")
    parser.add_argument("--speak", action="store_true", help="read the report aloud")
    return parser.parse_args(argv)


async def run_review(
    session: WorkflowSession,
    document: Path,
    reference: Path,
    *,
    speak: bool = False,
) -> int:
    """Run every stage once, in order. Returns a process exit code."""
    if not await session.load_document(document):
        return 1
    if not (await session.extract()).ok:
        return 1
    await session.summarize()

    if not await session.load_reference_file(reference):
        return 1
    await session.populate()
    added = session.add_reference()
    if added is None or not session.select_reference(added.id):
        return 1

    if not (await session.generate()).ok:
        return 1
    await session.critique()
    if speak and (await session.speak()).ok:
        await session.wait_for_playback()

    if not (await session.save()).ok:
        return 1
    saved = session.archive.list()[-1]
    kind = saved.output_kind.value if saved.output_kind is not None else "Report"
    print(f"== {kind} ({saved.id}) ==\n{saved.generated_output}")
    if saved.critique:
        print(f"\n== Critique ==\n{saved.critique}")
    return 0


async def _main(args: argparse.Namespace, session: WorkflowSession) -> int:
    try:
        return await run_review(session, args.document, args.reference, speak=args.speak)
    finally:
        await session.aclose()


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> session -> stages."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    try:
        session = build_session(settings)
    except ValueError as exc:
        Log.error(f"Cannot start review session: {exc}")
        return 2
    return asyncio.run(_main(args, session))


if __name__ == "__main__":
    raise SystemExit(main())
