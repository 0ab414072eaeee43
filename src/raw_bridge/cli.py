import json
import os

import click

from . import config, core, orchestrator


def _load_settings(path):
    if not path:
        return None
    with open(path, 'r', encoding='utf-8') as f:
        settings = json.load(f)
    if not isinstance(settings, dict):
        raise click.BadParameter("Settings file must contain a JSON object.", param_hint="--settings")
    return settings


@click.command()
@click.argument("input_path", type=click.Path(exists=True))
@click.option(
    "--full",
    "full_output",
    is_flag=True,
    default=False,
    help="Include color data, common metadata and the manufacturer block.",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with decode settings (e.g. {\"outputBps\": 16, \"useCameraWb\": 1}).",
)
@click.option(
    "--thumbnail",
    "thumbnail_path",
    type=click.Path(),
    help="Write the embedded thumbnail to this path (single file only).",
)
@click.option(
    "--render",
    "render_path",
    type=click.Path(),
    help="Fully decode and save the pixels as a .npy array (single file only).",
)
@click.option(
    "--jobs",
    type=int,
    default=config.DEFAULT_JOBS,
    help="Number of concurrent jobs for directory input. Default is 4.",
)
def main(input_path, full_output, settings_path, thumbnail_path, render_path, jobs):
    """
    Prints RAW metadata as JSON, optionally extracting the thumbnail or the
    fully decoded image.

    INPUT_PATH: Path to a single RAW file or a directory of RAWs.
    """
    settings = _load_settings(settings_path)

    if os.path.isdir(input_path) and (thumbnail_path or render_path):
        raise click.UsageError("--thumbnail and --render need a single input file.")

    try:
        results = orchestrator.process_path(
            input_path=input_path,
            full_output=full_output,
            settings=settings,
            jobs=jobs,
            logger_func=click.echo,  # Use click.echo for robust Unicode support
        )
        if thumbnail_path:
            core.extract_thumbnail(input_path, thumbnail_path, log_queue=click.echo)
        if render_path:
            core.render_image(input_path, render_path, settings, log_queue=click.echo)
    except Exception as e:
        raise click.ClickException(f"A critical error occurred: {e}")

    payload = results[0] if not os.path.isdir(input_path) else results
    click.echo(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":
    main()
