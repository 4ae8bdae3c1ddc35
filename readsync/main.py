#!/usr/bin/env python3
"""
Read-Along Sync - Main CLI

Narrates a PDF or text file sentence by sentence while reporting where
each sentence sits on its page. A thin host around the read-along core:
it opens the document, picks a speech engine and prints highlights.
"""

import importlib.util
import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape

from readsync import __version__
from readsync.readalong.document import Document, PDFPageTextProvider, PageTextProvider, TextPageProvider
from readsync.readalong.executor import OwnerExecutor
from readsync.readalong.highlight import ConsoleRenderer, HighlightOverlay
from readsync.readalong.playback import PlaybackController, PlaybackListener, PlaybackStatus
from readsync.readalong.sentence_splitter import Sentence, SentenceSplitter
from readsync.readalong.speech_engine import SpeechEngineNotAvailableError, create_speech_engine
from readsync.readalong.text_locator import TextLocator
from readsync.utils import logger
from readsync.utils.config import config


def open_provider(input_path: Path) -> PageTextProvider:
    """Open a PDF with PyMuPDF, anything else as form-feed separated text."""
    if input_path.suffix.lower() == ".pdf":
        return PDFPageTextProvider(input_path)
    return TextPageProvider.from_file(input_path)


class ConsoleNarration(PlaybackListener):
    """Prints narration progress and ends the owner loop when done."""

    def __init__(self, executor: OwnerExecutor):
        self.executor = executor

    def on_page_changed(self, page_index: int) -> None:
        logger.step(f"Page {page_index + 1}")

    def on_sentence_changed(self, sentence: Sentence) -> None:
        logger.console.print(f"  [bold]{sentence.index + 1:>3}[/bold] {escape(sentence.text)}")

    def on_error(self, message: str) -> None:
        logger.error(message)

    def on_playback_finished(self) -> None:
        logger.success("Finished reading")
        self.executor.shutdown()


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Read-Along Sync

    Narrate PDF or text documents with a sentence highlight that
    follows the voice.
    """
    pass


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("-p", "--page", type=int, default=None, help="Only this page (1-based)")
@click.option("--soft-breaks", is_flag=True, help="Also split on commas, semicolons and colons")
def sentences(input_file: str, page: Optional[int], soft_breaks: bool):
    """
    Show how each page is split into sentences.
    """
    splitter = SentenceSplitter(use_soft_breaks=True if soft_breaks else None)
    provider = open_provider(Path(input_file))
    document = Document(provider)

    try:
        pages = range(document.page_count) if page is None else [page - 1]
        for page_index in pages:
            if not document.has_page(page_index):
                logger.error(f"Page {page_index + 1} does not exist ({document.page_count} pages)")
                sys.exit(1)
            found = splitter.split(document.page_text(page_index), page_index)
            logger.step(f"Page {page_index + 1}: {len(found)} sentences")
            for sentence in found:
                marker = "*" if sentence.synthetic_terminator else " "
                logger.console.print(f"  {sentence.index + 1:>3}{marker} {escape(sentence.text)}")
    finally:
        provider.close()


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.argument("text")
@click.option("-p", "--page", type=int, default=1, help="Page to start searching on (1-based)")
def locate(input_file: str, text: str, page: int):
    """
    Find where TEXT sits in the document.
    """
    provider = open_provider(Path(input_file))
    document = Document(provider)
    locator = TextLocator()

    try:
        result = locator.locate(text, document, page - 1)
        if result is None:
            logger.warning("Text not found near that page")
            sys.exit(1)

        x0, y0, x1, y1 = (round(v, 1) for v in result.bounds.as_tuple())
        logger.success(f"Found on page {result.page_index + 1}")
        logger.console.print(f"  Range:  {result.start}-{result.end}")
        logger.console.print(f"  Bounds: ({x0}, {y0}) ({x1}, {y1})")
        found = document.page_text(result.page_index)[result.start:result.end]
        logger.console.print(f"  Text:   {escape(repr(found))}")
    finally:
        provider.close()


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("-p", "--page", type=int, default=1, help="Page to start on (1-based)")
@click.option("-s", "--sentence", type=int, default=None, help="Read only this sentence (1-based)")
@click.option(
    "-e", "--engine",
    default=None,
    help=f"Speech engine: pyttsx3 or silent (default: {config.speech_engine})",
)
@click.option("-v", "--voice", default=None, help="System voice id or name")
@click.option("-r", "--rate", type=int, default=None, help="Speech rate in words per minute")
def read(
    input_file: str,
    page: int,
    sentence: Optional[int],
    engine: Optional[str],
    voice: Optional[str],
    rate: Optional[int],
):
    """
    Read the document aloud from PAGE, highlighting each sentence.
    """
    input_path = Path(input_file)
    logger.header(f"Reading: {input_path.name}")

    try:
        speech = create_speech_engine(engine, voice=voice, rate=rate, words_per_minute=rate)
    except SpeechEngineNotAvailableError as e:
        logger.error(str(e))
        sys.exit(1)

    fallback = None
    if speech.name != "silent" and config.fallback_engine == "silent":
        fallback = create_speech_engine("silent", fallback="", words_per_minute=rate)

    provider = open_provider(input_path)
    document = Document(provider)
    executor = OwnerExecutor()
    overlay = HighlightOverlay(ConsoleRenderer(), TextLocator())
    controller = PlaybackController(
        document,
        speech,
        executor,
        listeners=[overlay, ConsoleNarration(executor)],
        fallback_engine=fallback,
        page_index=max(0, page - 1),
    )

    logger.info(f"{document.page_count} pages, engine: {speech.name}")
    if sentence is not None:
        controller.jump_to_sentence(sentence - 1)
    else:
        controller.speak()

    try:
        if controller.status == PlaybackStatus.SPEAKING:
            executor.run_forever()
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        controller.stop()
    finally:
        speech.shutdown()
        if fallback is not None:
            fallback.shutdown()
        provider.close()


@cli.command()
def info():
    """
    Show system information and configuration.
    """
    logger.header("Read-Along Sync")

    logger.console.print("[bold]Paths:[/bold]")
    logger.console.print(f"  Project root: {escape(str(config.project_root))}")

    logger.console.print("\n[bold]Speech Settings:[/bold]")
    logger.console.print(f"  Engine:        {config.speech_engine}")
    logger.console.print(f"  Fallback:      {config.fallback_engine}")
    logger.console.print(f"  Voice:         {config.voice or 'system default'}")
    logger.console.print(f"  Rate:          {config.speech_rate} wpm")
    logger.console.print(f"  Pacing delay:  {config.pacing_delay}s")

    logger.console.print("\n[bold]Locator Settings:[/bold]")
    logger.console.print(f"  Segment length: {config.get('locator', 'segment_length')}")
    logger.console.print(f"  Max segments:   {config.get('locator', 'max_segments')}")
    logger.console.print(f"  Coverage:       {config.get('locator', 'coverage')}")
    logger.console.print(f"  Search radius:  {config.get('locator', 'search_radius')}")

    logger.console.print("\n[bold]Dependencies:[/bold]")

    # Check for PDF and speech backends
    modules = {
        "pyttsx3": importlib.util.find_spec("pyttsx3"),
        "fitz": importlib.util.find_spec("fitz"),
    }

    for module, spec in modules.items():
        status = "[green]OK[/green]" if spec else "[red]NOT FOUND[/red]"
        logger.console.print(f"  {module:<12} {status}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
