"""CLI entrypoint for narrator-master."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from narrator_master import __version__
from narrator_master.controllers import (
    AssistantAnalyzeCommand,
    AssistantBridgeCommand,
    AssistantOffTrackCommand,
    AssistantSuggestCommand,
    ImageGenerateCommand,
    ImageInfographicCommand,
    ImageSceneCommand,
    NarratorCliController,
)
from narrator_master.images.prompts import ART_STYLES, IMAGE_QUALITIES, IMAGE_STYLES, MOODS
from narrator_master.notifications import describe_failure
from narrator_master.pipeline.errors import PipelineError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = NarratorCliController()
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_context_option = click.option(
    "--context-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Adventure text used as context for the assistant.",
)
_sensitivity_option = click.option(
    "--sensitivity",
    type=click.Choice(["low", "medium", "high"], case_sensitive=False),
    default=None,
    help="Off-track sensitivity. Defaults to NARRATOR_MASTER_SENSITIVITY.",
)


@click.group()
@click.version_option(version=__version__, prog_name="narrator-master")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for pipeline diagnostics.",
)
def narrator_master(log_level: str) -> None:
    """Narrator Master: GM assistant and image generation CLI."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@narrator_master.group()
def assistant() -> None:
    """Text assistant commands."""


@assistant.command("analyze")
@click.argument("transcription")
@_context_option
@_sensitivity_option
@click.option(
    "--suggestions/--no-suggestions",
    default=True,
    show_default=True,
    help="Ask for GM suggestions.",
)
@click.option(
    "--off-track/--no-off-track",
    "check_off_track",
    default=True,
    show_default=True,
    help="Ask for an off-track assessment.",
)
def assistant_analyze(
    transcription: str,
    context_file: Path | None,
    sensitivity: str | None,
    suggestions: bool,
    check_off_track: bool,
) -> None:
    """Analyze a transcript window: suggestions, off-track status, relevant pages."""

    _emit_lines(
        _invoke(
            "Context analysis",
            lambda: CONTROLLER.analyze(
                AssistantAnalyzeCommand(
                    transcription=transcription,
                    context_file=context_file,
                    include_suggestions=suggestions,
                    check_off_track=check_off_track,
                    sensitivity=sensitivity,
                ),
            ),
        ),
    )


@assistant.command("off-track")
@click.argument("transcription")
@_context_option
@_sensitivity_option
def assistant_off_track(
    transcription: str,
    context_file: Path | None,
    sensitivity: str | None,
) -> None:
    """Check whether the players drifted away from the adventure."""

    _emit_lines(
        _invoke(
            "Off-track detection",
            lambda: CONTROLLER.off_track(
                AssistantOffTrackCommand(
                    transcription=transcription,
                    context_file=context_file,
                    sensitivity=sensitivity,
                ),
            ),
        ),
    )


@assistant.command("suggest")
@click.argument("transcription")
@_context_option
@click.option(
    "--max-suggestions",
    type=click.IntRange(min=1, max=10),
    default=3,
    show_default=True,
    help="Upper bound on returned suggestions.",
)
def assistant_suggest(
    transcription: str,
    context_file: Path | None,
    max_suggestions: int,
) -> None:
    """Generate GM suggestions for a transcript window."""

    _emit_lines(
        _invoke(
            "Suggestion generation",
            lambda: CONTROLLER.suggest(
                AssistantSuggestCommand(
                    transcription=transcription,
                    context_file=context_file,
                    max_suggestions=max_suggestions,
                ),
            ),
        ),
    )


@assistant.command("bridge")
@click.option("--situation", required=True, help="Where the players are now.")
@click.option("--target", required=True, help="Scene the players should reach.")
@_context_option
def assistant_bridge(situation: str, target: str, context_file: Path | None) -> None:
    """Write a short narration steering the players back to the plot."""

    _emit_lines(
        _invoke(
            "Narrative bridge",
            lambda: CONTROLLER.bridge(
                AssistantBridgeCommand(
                    current_situation=situation,
                    target_scene=target,
                    context_file=context_file,
                ),
            ),
        ),
    )


@narrator_master.group()
def image() -> None:
    """Image generation commands."""


@image.command("generate")
@click.argument("prompt")
@click.option("--size", default=None, help="Image size, for example 1024x1024.")
@click.option("--quality", type=click.Choice(IMAGE_QUALITIES), default=None, help="Image quality.")
@click.option("--style", type=click.Choice(IMAGE_STYLES), default=None, help="dall-e-3 style.")
@click.option("--base64", "base64_", is_flag=True, default=False, help="Return inline base64 data.")
def image_generate(
    prompt: str,
    size: str | None,
    quality: str | None,
    style: str | None,
    base64_: bool,
) -> None:
    """Generate an image from a raw prompt."""

    _emit_lines(
        _invoke(
            "Image generation",
            lambda: CONTROLLER.generate_image(
                ImageGenerateCommand(
                    prompt=prompt,
                    size=size,
                    quality=quality,
                    style=style,
                    base64=base64_,
                ),
            ),
        ),
    )


@image.command("scene")
@click.argument("description")
@click.option("--location", default="", help="Location of the scene.")
@click.option(
    "--lighting",
    default="",
    help="Lighting: torchlit, moonlight, daylight, candlelight, magical, or free text.",
)
@click.option("--character", "characters", multiple=True, help="Character in the scene. Repeatable.")
def image_scene(
    description: str,
    location: str,
    lighting: str,
    characters: tuple[str, ...],
) -> None:
    """Generate a scene illustration."""

    _emit_lines(
        _invoke(
            "Image generation",
            lambda: CONTROLLER.scene(
                ImageSceneCommand(
                    description=description,
                    location=location,
                    lighting=lighting,
                    characters=characters,
                ),
            ),
        ),
    )


@image.command("infographic")
@click.argument("description")
@click.option(
    "--style",
    type=click.Choice(sorted(ART_STYLES)),
    default="fantasy",
    show_default=True,
    help="Art style.",
)
@click.option(
    "--mood",
    type=click.Choice(sorted(MOODS)),
    default="dramatic",
    show_default=True,
    help="Image mood.",
)
@click.option("--element", "elements", multiple=True, help="Element to include. Repeatable.")
def image_infographic(
    description: str,
    style: str,
    mood: str,
    elements: tuple[str, ...],
) -> None:
    """Generate an RPG infographic for an event."""

    _emit_lines(
        _invoke(
            "Image generation",
            lambda: CONTROLLER.infographic(
                ImageInfographicCommand(
                    description=description,
                    style=style,
                    mood=mood,
                    elements=elements,
                ),
            ),
        ),
    )


@narrator_master.group()
def config() -> None:
    """Configuration commands."""


@config.command("show")
def config_show() -> None:
    """Print the effective configuration (API key is never shown)."""

    _emit_lines(_invoke("Configuration", CONTROLLER.show_config))


def _invoke(operation: str, action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except PipelineError as exc:
        notice = describe_failure(exc)
        raise click.ClickException(notice.render(operation)) from exc
    except ValueError as exc:
        raise click.ClickException(f"[{operation}] {exc}") from exc


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    narrator_master()
