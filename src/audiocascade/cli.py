"""CLI entry point for audiocascade."""

import asyncio
import logging
import signal
import sys
import time

import click

from audiocascade import __version__


def _load_config():
    from audiocascade.config import CascadeConfig
    from audiocascade.paths import get_config_path, get_data_dir

    cfg = CascadeConfig.load(get_config_path(get_data_dir()))
    config_path = get_config_path(get_data_dir(cfg.storage.data_dir))
    return CascadeConfig.load(config_path), config_path


def _create_orchestrator(cfg, only=()):
    """Build an orchestrator for this platform, optionally restricted to named backends."""
    from audiocascade.orchestrator import RecordingOrchestrator
    from audiocascade.recorder.cascade import build_cascade

    backends = build_cascade(cfg)
    if only:
        by_name = {b.name: b for b in backends}
        backends = [by_name[name] for name in only if name in by_name]
    return RecordingOrchestrator(backends=backends, config=cfg)


async def _run_record(orchestrator, duration):
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        handler_installed = False

    try:
        result = await orchestrator.start()
        if not result["success"]:
            raise click.ClickException(result.get("message") or result["error"])
        backend = orchestrator.owner.name if orchestrator.owner else "?"
        click.echo(f"Recording via {backend} ({result['mode']}) (Ctrl+C to stop)...")

        started = time.monotonic()
        while not stop_event.is_set():
            elapsed = time.monotonic() - started
            if duration is not None and elapsed >= duration:
                break
            minutes, secs = divmod(int(elapsed), 60)
            size_kb = orchestrator.store.active.buffer_size / 1024
            led = click.style("●", fg="red", blink=True)
            click.echo(f"\r  {led} REC {minutes:02d}:{secs:02d}  {size_kb:8.1f} KB", nl=False)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=0.25)
            except asyncio.TimeoutError:
                pass

        result = await orchestrator.stop()
        recording = result["recording"]
        path = await orchestrator.save_for_processing()
        click.echo(
            f"\nRecording saved: {path} "
            f"({recording.mode.value}, {recording.duration / 1000:.1f}s)"
        )
        return path
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


@click.group()
@click.version_option(version=__version__, prog_name="audiocascade")
@click.option("--verbose", "-v", is_flag=True, help="Show backend diagnostics.")
def main(verbose):
    """Record audio through whichever capture backend works."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--duration", "-t", type=float, default=None, help="Stop after this many seconds.")
@click.option("--backend", "-b", "only", multiple=True,
              help="Only try the named backend(s), in the order given.")
def record(duration, only):
    """Record until Ctrl+C (or --duration) and save the audio for processing."""
    cfg, _ = _load_config()
    orchestrator = _create_orchestrator(cfg, only)
    asyncio.run(_run_record(orchestrator, duration))


@main.command()
def backends():
    """Show the capture cascade for this platform."""
    from audiocascade.recorder.cascade import build_cascade

    cfg, _ = _load_config()
    cascade = build_cascade(cfg)
    click.echo(f"Platform: {sys.platform}")
    click.echo(f"{'#':<3} {'Backend':<15} {'Mode':<17} {'Available'}")
    click.echo("-" * 45)
    for i, backend in enumerate(cascade, 1):
        available = "yes" if backend.is_available() else "no"
        click.echo(f"{i:<3} {backend.name:<15} {backend.mode.value:<17} {available}")


@main.command()
def cleanup():
    """Delete every file in the working directory."""
    from audiocascade.paths import get_work_dir
    from audiocascade.session import SessionStore

    cfg, _ = _load_config()
    store = SessionStore(get_work_dir(cfg.storage.work_dir))
    store.clear()
    click.echo(f"Cleaned up {store.work_dir}")


@main.command()
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--list", "list_all", is_flag=True, help="Show all configuration values.")
def config(key, value, list_all):
    """View or set configuration."""
    cfg, config_path = _load_config()

    if list_all or (key is None and value is None):
        for section_name, section_dict in cfg._to_dict().items():
            for k, v in section_dict.items():
                click.echo(f"{section_name}.{k} = {v!r}")
        return

    if value is None:
        try:
            click.echo(cfg.get(key))
        except KeyError as e:
            raise click.ClickException(str(e))
        return

    try:
        cfg.set(key, value)
    except (KeyError, ValueError) as e:
        raise click.ClickException(str(e))
    cfg.save(config_path)
    click.echo(f"Set {key} = {cfg.get(key)!r}")
