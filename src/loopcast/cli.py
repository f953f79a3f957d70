"""
Loopcast CLI - entry point

Station administration (init, add-track, token, skip), a now-playing
readout, the HTTP server, and an interactive listening client.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.markup import escape

from loopcast.core.config import Config, load_config
from loopcast.core.console import format_time, get_console, safe_print
from loopcast.core.database import configure_database
from loopcast.core.output import log, setup_from_config
from loopcast.errors import AuthorizationError, LoopcastError, NoCurrentTrackError

LISTEN_HELP = """Commands:
  p          pause / resume
  l          go live (rejoin the broadcast)
  t <id>     play a catalog track on demand
  f / b      seek forward / back 10s
  + / -      volume up / down
  s          skip the broadcast track (needs LOOPCAST_TOKEN)
  n          show what is playing
  q          quit"""


def _bootstrap(args: argparse.Namespace) -> Config:
    """Load configuration and set up logging and storage paths."""
    config_path = Path(args.config).expanduser() if args.config else None
    config = load_config(config_path)
    if args.verbose:
        config.logging.level = "DEBUG"
        config.logging.console_output = True
    setup_from_config(config.logging)
    configure_database(config.database)
    return config


def _station_id(args: argparse.Namespace, config: Config) -> int:
    return args.station if args.station is not None else config.station.default_station_id


def _source(args: argparse.Namespace, config: Config):
    """Schedule source for commands that can run locally or over HTTP."""
    from loopcast.domain.playback.client import LocalRadio, RadioClient

    station_id = _station_id(args, config)
    if getattr(args, "local", False):
        return LocalRadio(station_id, preview_size=config.station.preview_size)
    return RadioClient(args.url or config.server.base_url, station_id=station_id)


# === Commands ===


def cmd_init(args: argparse.Namespace, config: Config) -> int:
    """Write a default config if missing, create the schema and a first station."""
    from loopcast.core.config import get_config_path, write_default_config
    from loopcast.core.db_adapter import init_storage
    from loopcast.domain.radio import create_station, list_stations

    config_path = Path(args.config).expanduser() if args.config else get_config_path()
    if not config_path.exists():
        write_default_config(config_path)
        log(f"Wrote default configuration to {config_path}")

    init_storage()
    stations = list_stations()
    if stations:
        safe_print(f"Storage ready ({len(stations)} station(s) configured)", "green")
        return 0

    epoch = create_station(args.name or config.station.name)
    log(f"Created station {epoch.station_id}: {epoch.name}")
    return 0


def cmd_add_track(args: argparse.Namespace, config: Config) -> int:
    from loopcast.domain.catalog import add_track

    try:
        track = add_track(
            _station_id(args, config),
            title=args.title,
            artist=args.artist,
            duration=args.duration,
            source_url=args.source_url,
            play_order=args.order,
            artwork_url=args.artwork,
        )
    except ValueError as e:
        safe_print(f"Error: {e}", "red")
        return 1

    safe_print(
        f"Added #{track.id}: {escape(track.artist)} - {escape(track.title)} "
        f"({format_time(track.duration)}, position {track.play_order})",
        "green",
    )
    return 0


def cmd_now_playing(args: argparse.Namespace, config: Config) -> int:
    from rich.table import Table

    from loopcast.errors import SnapshotUnavailable

    try:
        snapshot = _source(args, config).now_playing()
    except SnapshotUnavailable as e:
        safe_print(f"Schedule unavailable: {e}", "red")
        return 1

    if not snapshot.on_air:
        safe_print("No signal (empty playlist)", "yellow")
        return 0

    track = snapshot.current
    safe_print(f"▶ {escape(track.artist)} - {escape(track.title)}", "bold cyan")
    safe_print(f"  {format_time(snapshot.elapsed_seconds)} / {format_time(track.duration)}")

    if snapshot.up_next:
        table = Table(title="Up next", show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Artist")
        table.add_column("Title")
        table.add_column("Length", justify="right")
        for i, upcoming in enumerate(snapshot.up_next, start=1):
            table.add_row(
                str(i),
                escape(upcoming.artist),
                escape(upcoming.title),
                format_time(upcoming.duration),
            )
        get_console().print(table)
    return 0


def cmd_token(args: argparse.Namespace, config: Config) -> int:
    from loopcast.domain.radio.auth import get_signing_secret, issue_token

    secret = get_signing_secret()
    if not secret:
        safe_print("LOOPCAST_SIGNING_SECRET is not set", "red")
        return 1
    print(issue_token(secret, ttl_seconds=args.ttl or config.auth.token_ttl_seconds))
    return 0


def cmd_skip(args: argparse.Namespace, config: Config) -> int:
    token = args.token or os.environ.get("LOOPCAST_TOKEN")
    try:
        _source(args, config).skip(token)
    except AuthorizationError as e:
        safe_print(f"Skip refused: {e.code}", "red")
        return 1
    except NoCurrentTrackError:
        safe_print("Nothing on air to skip", "yellow")
        return 1
    except LoopcastError as e:
        safe_print(f"Skip failed: {e}", "red")
        return 1

    log("Skipped the track on air")
    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    import uvicorn

    host = args.host or config.server.host
    port = args.port or config.server.port
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run(
        "web.backend.main:app",
        host=host,
        port=port,
        app_dir=str(Path.cwd()),
        log_level="info",
    )
    return 0


def _print_status(controller) -> None:
    state = controller.state
    if controller.calibrating:
        safe_print("Calibrating...", "dim")
        return
    track = state.current_track
    if state.needs_interaction:
        safe_print("Playback blocked - press p to play", "yellow")
    if track is None:
        safe_print(f"({state.mode.value}) No signal", "yellow")
        return
    duration = state.display_duration or 0
    status = "playing" if state.is_playing else "paused"
    safe_print(
        f"({state.mode.value}, {status}) {escape(track.artist)} - {escape(track.title)} "
        f"{format_time(state.position)} / {format_time(duration)} "
        f"vol {round(state.volume * 100)}%"
    )


def _handle_listen_command(line: str, controller, source) -> bool:
    """Run one interactive command. Returns False to quit."""
    parts = line.strip().split()
    if not parts:
        return True
    command, rest = parts[0].lower(), parts[1:]

    if command == "q":
        return False
    if command == "p":
        controller.toggle()
    elif command == "l":
        controller.play_live()
    elif command == "t":
        if not rest or not rest[0].isdigit():
            safe_print("Usage: t <track id>", "yellow")
            return True
        track_id = int(rest[0])
        try:
            track = next((t for t in source.tracks() if t.id == track_id), None)
        except LoopcastError as e:
            safe_print(f"Catalog unavailable: {e}", "red")
            return True
        if track is None:
            safe_print(f"No track {track_id} in this station", "yellow")
            return True
        controller.play_track(track)
    elif command in ("f", "b"):
        controller.seek(10.0 if command == "f" else -10.0)
    elif command in ("+", "-"):
        step = 0.1 if command == "+" else -0.1
        controller.set_volume(controller.state.volume + step)
    elif command == "s":
        try:
            controller.skip(os.environ.get("LOOPCAST_TOKEN"))
        except AuthorizationError as e:
            safe_print(f"Skip refused: {e.code}", "red")
        except NoCurrentTrackError:
            safe_print("Nothing on air to skip", "yellow")
        except LoopcastError as e:
            safe_print(f"Skip failed: {e}", "red")
    elif command != "n":
        safe_print(LISTEN_HELP)
        return True

    _print_status(controller)
    return True


def cmd_listen(args: argparse.Namespace, config: Config) -> int:
    from loopcast.domain.playback import (
        MpvEngine,
        PlaybackController,
        PollingLoop,
        check_mpv_available,
    )
    from loopcast.errors import SnapshotUnavailable

    if not check_mpv_available():
        safe_print("mpv is not installed or not on PATH", "red")
        return 1

    source = _source(args, config)
    volume = config.player.volume / 100
    engine = MpvEngine(config.player.mpv_socket_path, volume=volume)
    if not engine.start():
        safe_print("Could not start mpv", "red")
        return 1

    controller = PlaybackController(
        engine,
        fetch_snapshot=source.now_playing,
        skip_request=source.skip,
        volume=volume,
        resync_tolerance=config.player.resync_tolerance,
    )
    poller = PollingLoop(
        controller,
        poll_interval=config.player.poll_interval,
        engine_check_interval=config.player.engine_check_interval,
    )

    try:
        controller.start()
        if args.track is not None:
            try:
                track = next((t for t in source.tracks() if t.id == args.track), None)
            except SnapshotUnavailable as e:
                safe_print(f"Catalog unavailable: {e}", "red")
                track = None
            if track is not None:
                controller.play_track(track)
            else:
                safe_print(f"No track {args.track}, tuning in live instead", "yellow")
                controller.play_live()
        else:
            controller.play_live()

        poller.start()
        safe_print(LISTEN_HELP, "dim")
        _print_status(controller)

        while True:
            try:
                line = input("loopcast> ")
            except EOFError:
                break
            if not _handle_listen_command(line, controller, source):
                break
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop()
        engine.stop()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Loopcast - a shared-clock radio station",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    init_parser = subparsers.add_parser("init", help="Create storage and a first station")
    init_parser.add_argument("--name", help="Station name")

    add_parser = subparsers.add_parser("add-track", help="Append a track to a station's loop")
    add_parser.add_argument("title")
    add_parser.add_argument("artist")
    add_parser.add_argument("duration", type=int, help="Duration in seconds")
    add_parser.add_argument("source_url", help="Playable URL or file path")
    add_parser.add_argument("--station", type=int)
    add_parser.add_argument("--order", type=int, help="Explicit loop position")
    add_parser.add_argument("--artwork", help="Artwork URL")

    now_parser = subparsers.add_parser("now-playing", help="Show what is on air")
    token_parser = subparsers.add_parser("token", help="Issue an admin token")
    token_parser.add_argument("--ttl", type=int, help="Lifetime in seconds")

    skip_parser = subparsers.add_parser("skip", help="Skip the broadcast track")
    skip_parser.add_argument("--token", help="Admin token (default: $LOOPCAST_TOKEN)")

    listen_parser = subparsers.add_parser("listen", help="Tune in with mpv")
    listen_parser.add_argument("--track", type=int, help="Start with an on-demand track")

    for sub in (now_parser, skip_parser, listen_parser):
        sub.add_argument("--station", type=int)
        sub.add_argument("--url", help="API base URL (default: [server] base_url)")
        sub.add_argument(
            "--local", action="store_true", help="Read the station store directly"
        )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host")
    serve_parser.add_argument("--port", type=int)

    return parser


COMMANDS = {
    "init": cmd_init,
    "add-track": cmd_add_track,
    "now-playing": cmd_now_playing,
    "token": cmd_token,
    "skip": cmd_skip,
    "listen": cmd_listen,
    "serve": cmd_serve,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the loopcast command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    try:
        config = _bootstrap(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        sys.exit(COMMANDS[args.subcommand](args, config))
    except LoopcastError as e:
        logger.error(f"{args.subcommand} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
