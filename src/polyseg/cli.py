from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Sequence, Tuple

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from .config import EngineConfig, load_config
from .metrics import MetricsTracker, timed, use_tracker
from .polyline import PolyLine
from .scene import load_scene
from .types import FlipFlags, HitResult, Point, Rect


log = logging.getLogger(__name__)


class Logger:
    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose
        theme = Theme({
            "info": "cyan",
            "step": "bold cyan",
            "warning": "bold yellow",
            "error": "bold red",
        })
        self.console = Console(theme=theme, highlight=False, record=False)
        self.err_console = Console(theme=theme, highlight=False, record=False, stderr=True)

    def _print(self, message: str, style: str | None = None, *, err: bool = False) -> None:
        target = self.err_console if err else self.console
        message = escape(message)
        if style:
            target.print(f"[{style}]{message}[/{style}]")
        else:
            target.print(message)

    def info(self, message: str) -> None:
        self._print(message, style="info")

    def step(self, message: str) -> None:
        self.console.print(f"[step]▶ {escape(message)}")

    def warn(self, message: str) -> None:
        self._print(message, style="warning")

    def error(self, message: str) -> None:
        self._print(message, style="error", err=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def table(self, table: Table) -> None:
        self.console.print(table)


class _LoggingBridge(logging.Handler):
    def __init__(self, cli_logger: Logger, level: int) -> None:
        super().__init__(level)
        self._cli_logger = cli_logger

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            self._cli_logger.error(msg)
        elif record.levelno >= logging.WARNING:
            self._cli_logger.warn(msg)
        elif record.levelno >= logging.INFO:
            self._cli_logger.info(msg)
        else:
            self._cli_logger.debug(msg)


def _set_nested(config: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    if not path:
        return
    cursor: MutableMapping[str, Any] = config
    for key in path[:-1]:
        next_value = cursor.get(key)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            cursor[key] = next_value
        cursor = next_value
    cursor[path[-1]] = value


def _parse_cli_override(entry: str) -> Tuple[Tuple[str, ...], Any]:
    if "=" not in entry:
        raise ValueError("--opts expects 'path=value'")
    raw_path, raw_value = entry.split("=", 1)
    path = tuple(part.strip() for part in raw_path.split(".") if part.strip())
    if not path:
        raise ValueError("--opts needs a key path, e.g. canvas.no_auto_grow=true")
    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError as exc:
        raise ValueError(f"--opts {raw_path}: could not parse value ({exc})") from exc
    return path, value


def _load_engine_config(path: Optional[Path], opts: Sequence[str]) -> EngineConfig:
    raw: Dict[str, Any] = {}
    if path is not None:
        try:
            loaded = load_config(str(path))
        except yaml.YAMLError as exc:
            raise ValueError(f"Config could not be read: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, MutableMapping):
            raise ValueError("Config root must be a mapping")
        raw = dict(loaded)
    for entry in opts:
        key_path, value = _parse_cli_override(entry)
        _set_nested(raw, key_path, value)
    return EngineConfig.from_mapping(raw)


def _parse_flip(value: str) -> FlipFlags:
    flags = FlipFlags(0)
    for token in value.lower():
        if token == "h":
            flags |= FlipFlags.HORIZONTAL
        elif token == "v":
            flags |= FlipFlags.VERTICAL
        else:
            raise ValueError("--flip accepts h, v or hv")
    return flags


def _setup_logging(logger: Logger, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    package_logger = logging.getLogger("polyseg")
    package_logger.setLevel(log_level)
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        if isinstance(handler, _LoggingBridge):
            package_logger.removeHandler(handler)
    bridge = _LoggingBridge(logger, log_level)
    bridge.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(bridge)


def _handle_known_exception(logger: Logger, exc: Exception, *, prefix: str | None = None) -> None:
    message = str(exc) if str(exc) else exc.__class__.__name__
    if prefix:
        message = f"{prefix}: {message}"
    logger.error(message)


def _fmt_rect(rect: Rect) -> str:
    return f"x={rect.x:.3f} y={rect.y:.3f} w={rect.width:.3f} h={rect.height:.3f}"


def _fmt_point(pt: Point) -> str:
    return f"({pt.x:.3f}, {pt.y:.3f})"


def _points_table(points: List[Point]) -> Table:
    table = Table(title=f"{len(points)} points")
    table.add_column("#", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for i, p in enumerate(points):
        table.add_row(str(i), f"{p.x:.3f}", f"{p.y:.3f}")
    return table


def _report_shape(logger: Logger, shape: PolyLine) -> None:
    logger.info(f"Start {_fmt_point(shape.start_point)}  End {_fmt_point(shape.end_point)}")
    logger.info(f"Frame {_fmt_rect(shape.frame)}")
    logger.info(f"Inside {_fmt_rect(shape.inside)}")
    dim = shape.polylist.dim
    logger.info(f"Dim ({dim.x:.3f}, {dim.y:.3f})  closed={shape.polylist.closed}")


def _run(logger: Logger, verbose: bool, body) -> None:
    tracker = MetricsTracker()
    try:
        with use_tracker(tracker):
            with timed("total.run", logger=log):
                body()
        log.debug("metrics: %s", tracker.summary())
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from exc


app = typer.Typer(help="Segment chain geometry: tessellation, frames, hit tests and transforms")

_SCENE_ARG = typer.Argument(..., help="Path to a YAML scene description")
_CONFIG_OPT = typer.Option(None, "--config", help="Path to a YAML engine configuration")
_OPTS_OPT = typer.Option(
    [],
    "--opts",
    help="Override configuration values, e.g. --opts hit_slop=4",
    show_default=False,
    metavar="PATH=VALUE",
)
_VERBOSE_OPT = typer.Option(False, "--verbose", is_flag=True, help="Enable debug output")


@app.command("tessellate")
def tessellate_cmd(
    scene: Path = _SCENE_ARG,
    dense: bool = typer.Option(True, "--dense/--anchors", help="Sample curves or emit anchors only"),
    frame_relative: bool = typer.Option(False, "--frame-relative", help="Report points relative to the frame"),
    samples: Optional[int] = typer.Option(None, "--samples", min=2, help="Samples per curved segment"),
    config: Optional[Path] = _CONFIG_OPT,
    opts: List[str] = _OPTS_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Print the tessellated outline of a scene."""

    logger = Logger(verbose=verbose)
    _setup_logging(logger, verbose)

    def body() -> None:
        shape = load_scene(str(scene), _load_engine_config(config, opts))
        points = shape.get_poly_points(samples, absolute=not frame_relative, all_segments=not dense)
        logger.table(_points_table(points))

    _run(logger, verbose, body)


@app.command("frame")
def frame_cmd(
    scene: Path = _SCENE_ARG,
    config: Optional[Path] = _CONFIG_OPT,
    opts: List[str] = _OPTS_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Print the anchors, frame and normalised box of a scene."""

    logger = Logger(verbose=verbose)
    _setup_logging(logger, verbose)

    def body() -> None:
        shape = load_scene(str(scene), _load_engine_config(config, opts))
        _report_shape(logger, shape)

    _run(logger, verbose, body)


@app.command("hit")
def hit_cmd(
    scene: Path = _SCENE_ARG,
    x: float = typer.Argument(..., help="Query x"),
    y: float = typer.Argument(..., help="Query y"),
    config: Optional[Path] = _CONFIG_OPT,
    opts: List[str] = _OPTS_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Report which segment of a scene lies under a point."""

    logger = Logger(verbose=verbose)
    _setup_logging(logger, verbose)

    def body() -> None:
        shape = load_scene(str(scene), _load_engine_config(config, opts))
        pt = Point(x, y)
        result = HitResult()
        code = shape.hit(pt, result)
        logger.info(f"segment={shape.poly_hit_seg(pt)} hitcode={code.name} ({int(code)})")
        if result.segment >= 0:
            logger.debug(f"hit segment {result.segment} at {_fmt_point(result.pt)}")

    _run(logger, verbose, body)


@app.command("transform")
def transform_cmd(
    scene: Path = _SCENE_ARG,
    flip: Optional[str] = typer.Option(None, "--flip", help="Mirror: h, v or hv"),
    scale: Optional[Tuple[float, float]] = typer.Option(None, "--scale", help="Scale factors SX SY"),
    rotate: Optional[float] = typer.Option(None, "--rotate", help="Rotate about the frame centre, degrees"),
    config: Optional[Path] = _CONFIG_OPT,
    opts: List[str] = _OPTS_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Apply flip, scale and rotation in that order and print the result."""

    logger = Logger(verbose=verbose)
    _setup_logging(logger, verbose)

    def body() -> None:
        shape = load_scene(str(scene), _load_engine_config(config, opts))
        if flip:
            logger.step(f"Flip {flip}")
            shape.flip(_parse_flip(flip))
        if scale is not None:
            sx, sy = scale
            if sx <= 0 or sy <= 0:
                raise ValueError("--scale factors must be positive")
            logger.step(f"Scale {sx:g} x {sy:g}")
            shape.scale_object(scale_x=sx, scale_y=sy)
        if rotate:
            logger.step(f"Rotate {rotate:g} degrees")
            if not shape.after_rotate_shape(shape.frame.center(), 0.0, rotate):
                logger.warn("Rotation rejected: the frame would leave the canvas")
        _report_shape(logger, shape)

    _run(logger, verbose, body)


if __name__ == "__main__":
    app()
