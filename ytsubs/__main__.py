"""ytsubs CLI - YouTube caption retrieval."""

import json
import sys
from pathlib import Path
from typing import Any

import fire
from rich.console import Console

from ytsubs import __version__
from ytsubs.config import get_config_path, load_config
from ytsubs.errors import AllStrategiesExhaustedError, CaptionError
from ytsubs.fetcher import resolve_captions
from ytsubs.logging import configure_logging, logger
from ytsubs.models import InvalidInputError, is_video_id, resolve_video_id

console = Console()

OUTPUT_FORMATS = ("text", "srt", "json")


class YtsubsCLI:
    """YouTube caption retrieval CLI.

    Tries the transcript library, then video info, then the raw timed-text
    endpoint, until one of them returns captions.

    Examples:
        ytsubs fetch "https://youtu.be/dQw4w9WgXcQ"
        ytsubs fetch dQw4w9WgXcQ --lang de --format srt --output captions.srt
        ytsubs --json-output fetch "https://www.youtube.com/shorts/dQw4w9WgXcQ"
        ytsubs --verbose fetch dQw4w9WgXcQ  # Log every attempted option
    """

    def __init__(self, verbose: bool = False, json_output: bool = False) -> None:
        """Initialize CLI with options.

        Args:
            verbose: Enable debug logging
            json_output: Output results as JSON instead of human-readable text
        """
        configure_logging(verbose)
        self._json = json_output
        logger.debug("ytsubs initialized with verbose={}, json={}", verbose, json_output)

    def _output(self, data: dict[str, Any]) -> dict[str, Any] | None:
        """Output result as JSON or print nothing (human output already printed)."""
        if self._json:
            print(json.dumps(data, indent=2, ensure_ascii=False))
        return data if self._json else None

    def version(self) -> None:
        """Show ytsubs version."""
        if self._json:
            self._output({"version": __version__})
        else:
            console.print(f"ytsubs {__version__}")

    def config(self) -> dict[str, Any] | None:
        """Show config file path and effective settings.

        Example:
            ytsubs config
        """
        config_path = get_config_path()
        config = load_config()
        settings = config.model_dump()
        if settings.get("proxy_url"):
            settings["proxy_url"] = "<hidden>"

        if self._json:
            return self._output(
                {
                    "config_path": str(config_path),
                    "config_exists": config_path.exists(),
                    "settings": settings,
                }
            )

        console.print(f"[bold]Config path:[/bold] {config_path}")
        if not config_path.exists():
            console.print("[dim]No config file, using defaults[/dim]")
        console.print()
        for key, value in settings.items():
            console.print(f"  {key} = {value}")
        return None

    def video_id(self, url_or_id: str) -> str | dict[str, Any] | None:
        """Extract the video ID from a URL (no network access).

        Args:
            url_or_id: Video URL (watch, youtu.be, shorts, live, embed) or ID

        Example:
            ytsubs video_id "https://youtu.be/dQw4w9WgXcQ"
        """
        try:
            vid = resolve_video_id(str(url_or_id))
        except InvalidInputError as e:
            if self._json:
                return self._output({"error": str(e)})
            console.print(f"[red]{e}[/red]")
            return None

        if self._json:
            return self._output({"video_id": vid})
        print(vid)
        return None

    def fetch(
        self,
        url_or_id: str,
        lang: str | None = None,
        format: str = "text",
        output: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch captions for a video.

        Args:
            url_or_id: Video URL or ID
            lang: Preferred language code (e.g. "de"); English is the fallback
            format: Output format: text, srt or json
            output: Write to this file instead of stdout

        Example:
            ytsubs fetch dQw4w9WgXcQ
            ytsubs fetch dQw4w9WgXcQ --lang es --format srt --output video.srt
            ytsubs --json-output fetch dQw4w9WgXcQ
        """
        if format not in OUTPUT_FORMATS:
            msg = f"Unknown format '{format}'. Use one of: {', '.join(OUTPUT_FORMATS)}"
            if self._json:
                return self._output({"error": msg})
            console.print(f"[red]{msg}[/red]")
            return None

        try:
            result = resolve_captions(str(url_or_id), str(lang) if lang is not None else None)
        except (InvalidInputError, CaptionError) as e:
            if self._json:
                return self._output({"error": str(e)})
            if isinstance(e, AllStrategiesExhaustedError):
                console.print(f"[red]{e.reason}[/red]")
                console.print("[bold]Tried:[/bold]")
                for entry in e.trace:
                    console.print(f"  {entry}")
            else:
                console.print(f"[red]{e}[/red]")
            return None

        if self._json and output is None:
            return self._output(result.to_dict())

        if format == "srt":
            content = result.srt
        elif format == "json":
            content = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        else:
            content = result.plain_text

        if output:
            Path(output).write_text(content + "\n", encoding="utf-8")
            logger.info("Saved {} captions to {}", len(result.segments), output)
            return self._output({"video_id": result.video_id, "output": output, "count": len(result.segments)})

        print(content)
        return None


def quote_video_ids(args: list[str]) -> list[str]:
    """Quote ID-shaped arguments so fire keeps them as strings.

    fire parses arguments as Python literals, which turns IDs such as
    "00000000001" or "12345678e10" into numbers.
    """
    return [f'"{arg}"' if is_video_id(arg) and not arg.startswith("-") else arg for arg in args]


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = sys.argv[1:] if argv is None else argv
    fire.Fire(YtsubsCLI, command=quote_video_ids(args))


if __name__ == "__main__":
    main()
