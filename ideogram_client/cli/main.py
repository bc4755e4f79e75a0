"""Command-line interface for the Ideogram API."""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from pydantic import ValidationError

from ideogram_client.api import IdeogramAPI, extract_descriptions
from ideogram_client.config import Settings, get_settings, resolve_api_key
from ideogram_client.constants import ASPECT_RATIOS, RESOLUTIONS, STYLE_PRESETS
from ideogram_client.errors import IdeogramError
from ideogram_client.logging import get_logger, setup_logging
from ideogram_client.results import (
    SavedResults,
    fetch_image,
    save_description,
    save_results,
)

app = typer.Typer(
    help="Generate and manipulate images with the Ideogram API",
    no_args_is_help=True,
)

logger = get_logger("cli")

EXAMPLES = """
Ideogram CLI examples

  Generate an image:
    ideogram generate --prompt "A serene mountain landscape at sunset"

  Several prompts in one run (processed in order, stops at the first failure):
    ideogram generate -p "a red fox" -p "a snowy owl" --aspect-ratio 16x9

  Edit the masked region of an image:
    ideogram edit --prompt "change the sky to golden hour" --image photo.jpg --mask mask.png

  Remix an image:
    ideogram remix --prompt "watercolor painting" --image photo.jpg --image-weight 75

  Reframe a square image:
    ideogram reframe --image square.png --resolution 1536x640

  Replace the background:
    ideogram replace-background --prompt "a tropical beach" --image portrait.jpg

  Upscale and describe:
    ideogram upscale --image low_res.jpg --resemblance 85 --detail 90
    ideogram describe --image photo.jpg --describe-model-version V_3

  Images may be local paths or https URLs. Results are written to
  datasets/ideogram/<operation>/ unless --output-dir is given.
"""


@dataclass
class CliState:
    """Global options shared by every command."""

    api_key: Optional[str] = None
    output_dir: Optional[str] = None
    log_level: Optional[str] = None


Action = Callable[[IdeogramAPI, Settings, str], Awaitable[None]]


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="Ideogram API key (overrides IDEOGRAM_API_KEY)"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Base directory for saved results"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (debug, info, warn, error)"
    ),
    examples: bool = typer.Option(False, "--examples", help="Show usage examples"),
):
    """Ideogram image generation CLI."""
    if examples:
        typer.echo(EXAMPLES)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    ctx.obj = CliState(api_key=api_key, output_dir=output_dir, log_level=log_level)


def _params(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def _progress(message: str) -> None:
    typer.echo(f"[...] {message}")


def _report(saved: SavedResults) -> None:
    if not saved.image_paths:
        typer.echo("[WARN] No images returned")
        return
    total = len(saved.image_paths)
    for index, path in enumerate(saved.image_paths, start=1):
        typer.echo(f"[OK] Saved image {index}/{total}: {path}")
    if saved.metadata_path:
        typer.echo(f"[OK] Saved metadata: {saved.metadata_path}")


def _fetcher(settings: Settings):
    return functools.partial(
        fetch_image,
        max_bytes=settings.security.max_image_bytes,
        timeout=settings.security.download_timeout,
        max_redirects=settings.security.max_redirects,
    )


async def _with_api(api_key: str, settings: Settings, output_dir: str, action: Action):
    async with IdeogramAPI(
        api_key,
        settings.api.base_url,
        hardened=settings.security.hardened,
        timeout=settings.api.timeout,
        max_image_bytes=settings.security.max_image_bytes,
        download_timeout=settings.security.download_timeout,
        max_redirects=settings.security.max_redirects,
    ) as api:
        await action(api, settings, output_dir)


def _execute(ctx: typer.Context, action: Action) -> None:
    """Resolve configuration, run one operation and map failures to exit code 1."""
    state: CliState = ctx.obj or CliState()
    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    try:
        setup_logging(state.log_level or settings.logging.level)
    except ValueError as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(1)

    output_dir = state.output_dir or settings.output.directory
    try:
        api_key = resolve_api_key(state.api_key)
        asyncio.run(_with_api(api_key, settings, output_dir, action))
    except IdeogramError as e:
        logger.debug(f"{e.kind.name} failure: {e.message}")
        typer.echo(f"[ERROR] {e.message}", err=True)
        raise typer.Exit(1)
    except OSError as e:
        typer.echo(f"[ERROR] Failed to save results: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def generate(
    ctx: typer.Context,
    prompt: List[str] = typer.Option(
        ..., "--prompt", "-p", help="Generation prompt (repeat for several images)"
    ),
    aspect_ratio: Optional[str] = typer.Option(None, "--aspect-ratio", help="e.g. 16x9"),
    resolution: Optional[str] = typer.Option(None, "--resolution", help="e.g. 1024x1024"),
    rendering_speed: str = typer.Option("DEFAULT", "--rendering-speed"),
    magic_prompt: str = typer.Option("AUTO", "--magic-prompt"),
    negative_prompt: Optional[str] = typer.Option(None, "--negative-prompt"),
    num_images: int = typer.Option(1, "--num-images", "-n"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    color_palette: Optional[str] = typer.Option(None, "--color-palette"),
    style_type: Optional[str] = typer.Option(None, "--style-type"),
    style_preset: Optional[str] = typer.Option(None, "--style-preset"),
):
    """Generate images from text prompts (Ideogram 3.0)."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        for index, text in enumerate(prompt, start=1):
            logger.info(f'Processing prompt {index}/{len(prompt)}: "{text}"')
            _progress(f"Generating image(s) for prompt {index}/{len(prompt)}...")
            response = await api.generate(
                text,
                resolution=resolution,
                aspect_ratio=aspect_ratio,
                rendering_speed=rendering_speed,
                magic_prompt=magic_prompt,
                negative_prompt=negative_prompt,
                num_images=num_images,
                seed=seed,
                color_palette=color_palette,
                style_type=style_type,
                style_preset=style_preset,
            )
            typer.echo("[OK] Generation complete")
            parameters = _params(
                prompt=text,
                resolution=resolution,
                aspect_ratio=aspect_ratio,
                rendering_speed=rendering_speed,
                magic_prompt=magic_prompt,
                negative_prompt=negative_prompt,
                num_images=num_images,
                seed=seed,
                color_palette=color_palette,
                style_type=style_type,
                style_preset=style_preset,
            )
            saved = await save_results(
                response,
                "generate-v3",
                text,
                output_dir,
                parameters,
                fetch=_fetcher(settings),
            )
            _report(saved)
        typer.echo(f"[OK] All done! Processed {len(prompt)} prompt(s)")

    _execute(ctx, action)


@app.command()
def edit(
    ctx: typer.Context,
    prompt: str = typer.Option(..., "--prompt", "-p", help="Editing prompt"),
    image: str = typer.Option(..., "--image", "-i", help="Image path or https URL"),
    mask: str = typer.Option(..., "--mask", "-m", help="Mask path or https URL"),
    magic_prompt: str = typer.Option("AUTO", "--magic-prompt"),
    num_images: int = typer.Option(1, "--num-images", "-n"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    rendering_speed: str = typer.Option("DEFAULT", "--rendering-speed"),
    style_type: Optional[str] = typer.Option(None, "--style-type"),
    style_preset: Optional[str] = typer.Option(None, "--style-preset"),
):
    """Edit the masked region of an image (Ideogram 3.0)."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Editing image...")
        response = await api.edit(
            prompt,
            image,
            mask,
            magic_prompt=magic_prompt,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_type=style_type,
            style_preset=style_preset,
        )
        typer.echo("[OK] Edit complete")
        parameters = _params(
            prompt=prompt,
            image=image,
            mask=mask,
            magic_prompt=magic_prompt,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_type=style_type,
            style_preset=style_preset,
        )
        _report(
            await save_results(
                response, "edit-v3", prompt, output_dir, parameters, fetch=_fetcher(settings)
            )
        )

    _execute(ctx, action)


@app.command()
def remix(
    ctx: typer.Context,
    prompt: str = typer.Option(..., "--prompt", "-p", help="Remix prompt"),
    image: str = typer.Option(..., "--image", "-i", help="Image path or https URL"),
    image_weight: Optional[int] = typer.Option(None, "--image-weight", help="0-100"),
    resolution: Optional[str] = typer.Option(None, "--resolution"),
    aspect_ratio: Optional[str] = typer.Option(None, "--aspect-ratio"),
    rendering_speed: str = typer.Option("DEFAULT", "--rendering-speed"),
    magic_prompt: str = typer.Option("AUTO", "--magic-prompt"),
    negative_prompt: Optional[str] = typer.Option(None, "--negative-prompt"),
    num_images: int = typer.Option(1, "--num-images", "-n"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    style_type: Optional[str] = typer.Option(None, "--style-type"),
    style_preset: Optional[str] = typer.Option(None, "--style-preset"),
):
    """Remix an image guided by a prompt (Ideogram 3.0)."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Remixing image...")
        response = await api.remix(
            prompt,
            image,
            image_weight=image_weight,
            resolution=resolution,
            aspect_ratio=aspect_ratio,
            rendering_speed=rendering_speed,
            magic_prompt=magic_prompt,
            negative_prompt=negative_prompt,
            num_images=num_images,
            seed=seed,
            style_type=style_type,
            style_preset=style_preset,
        )
        typer.echo("[OK] Remix complete")
        parameters = _params(
            prompt=prompt,
            image=image,
            image_weight=image_weight,
            resolution=resolution,
            aspect_ratio=aspect_ratio,
            rendering_speed=rendering_speed,
            magic_prompt=magic_prompt,
            negative_prompt=negative_prompt,
            num_images=num_images,
            seed=seed,
            style_type=style_type,
            style_preset=style_preset,
        )
        _report(
            await save_results(
                response, "remix-v3", prompt, output_dir, parameters, fetch=_fetcher(settings)
            )
        )

    _execute(ctx, action)


@app.command()
def reframe(
    ctx: typer.Context,
    image: str = typer.Option(..., "--image", "-i", help="Square image path or https URL"),
    resolution: str = typer.Option(..., "--resolution", "-r", help="Target resolution"),
    num_images: int = typer.Option(1, "--num-images", "-n"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    rendering_speed: str = typer.Option("DEFAULT", "--rendering-speed"),
    style_preset: Optional[str] = typer.Option(None, "--style-preset"),
):
    """Reframe a square image to a new resolution (Ideogram 3.0)."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Reframing image...")
        response = await api.reframe(
            image,
            resolution,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_preset=style_preset,
        )
        typer.echo("[OK] Reframe complete")
        parameters = _params(
            image=image,
            resolution=resolution,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_preset=style_preset,
        )
        _report(
            await save_results(
                response,
                "reframe-v3",
                f"reframe {resolution}",
                output_dir,
                parameters,
                fetch=_fetcher(settings),
            )
        )

    _execute(ctx, action)


@app.command("replace-background")
def replace_background(
    ctx: typer.Context,
    prompt: str = typer.Option(..., "--prompt", "-p", help="Background description"),
    image: str = typer.Option(..., "--image", "-i", help="Image path or https URL"),
    magic_prompt: str = typer.Option("AUTO", "--magic-prompt"),
    num_images: int = typer.Option(1, "--num-images", "-n"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    rendering_speed: str = typer.Option("DEFAULT", "--rendering-speed"),
    style_preset: Optional[str] = typer.Option(None, "--style-preset"),
):
    """Replace the background of an image (Ideogram 3.0)."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Replacing background...")
        response = await api.replace_background(
            prompt,
            image,
            magic_prompt=magic_prompt,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_preset=style_preset,
        )
        typer.echo("[OK] Background replacement complete")
        parameters = _params(
            prompt=prompt,
            image=image,
            magic_prompt=magic_prompt,
            num_images=num_images,
            seed=seed,
            rendering_speed=rendering_speed,
            style_preset=style_preset,
        )
        _report(
            await save_results(
                response,
                "replace-background-v3",
                prompt,
                output_dir,
                parameters,
                fetch=_fetcher(settings),
            )
        )

    _execute(ctx, action)


@app.command()
def upscale(
    ctx: typer.Context,
    image: str = typer.Option(..., "--image", "-i", help="Image path or https URL"),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Optional guidance"),
    resemblance: Optional[int] = typer.Option(None, "--resemblance", help="0-100"),
    detail: Optional[int] = typer.Option(None, "--detail", help="0-100"),
    magic_prompt_option: Optional[str] = typer.Option(None, "--magic-prompt-option"),
    num_images: int = typer.Option(1, "--num-images", "-n", help="1-4"),
    seed: Optional[int] = typer.Option(None, "--seed"),
):
    """Upscale an image."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Upscaling image...")
        response = await api.upscale(
            image,
            prompt=prompt,
            resemblance=resemblance,
            detail=detail,
            magic_prompt_option=magic_prompt_option,
            num_images=num_images,
            seed=seed,
        )
        typer.echo("[OK] Upscale complete")
        parameters = _params(
            image=image,
            prompt=prompt,
            resemblance=resemblance,
            detail=detail,
            magic_prompt_option=magic_prompt_option,
            num_images=num_images,
            seed=seed,
        )
        _report(
            await save_results(
                response,
                "upscale",
                prompt or "upscale",
                output_dir,
                parameters,
                fetch=_fetcher(settings),
            )
        )

    _execute(ctx, action)


@app.command()
def describe(
    ctx: typer.Context,
    image: str = typer.Option(..., "--image", "-i", help="Image path or https URL"),
    describe_model_version: Optional[str] = typer.Option(
        None, "--describe-model-version", help="V_2 or V_3"
    ),
):
    """Describe the content of an image."""

    async def action(api: IdeogramAPI, settings: Settings, output_dir: str) -> None:
        _progress("Describing image...")
        response = await api.describe(image, describe_model_version=describe_model_version)
        descriptions = extract_descriptions(response)

        typer.echo("Descriptions:")
        for index, text in enumerate(descriptions, start=1):
            typer.echo(f"{index}. {text}")

        path = save_description(
            image,
            descriptions,
            output_dir,
            _params(image=image, describe_model_version=describe_model_version),
        )
        typer.echo(f"[OK] Saved metadata: {path}")

    _execute(ctx, action)


@app.command("list-style-presets")
def list_style_presets():
    """List the available style presets."""
    typer.echo(f"Available style presets ({len(STYLE_PRESETS)}):")
    for preset in STYLE_PRESETS:
        typer.echo(f"  {preset}")


@app.command("list-aspect-ratios")
def list_aspect_ratios():
    """List the available aspect ratios."""
    typer.echo(f"Available aspect ratios ({len(ASPECT_RATIOS)}):")
    for ratio in ASPECT_RATIOS:
        typer.echo(f"  {ratio}")


@app.command("list-resolutions")
def list_resolutions():
    """List the available resolutions."""
    typer.echo(f"Available resolutions ({len(RESOLUTIONS)}):")
    for resolution in RESOLUTIONS:
        typer.echo(f"  {resolution}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
