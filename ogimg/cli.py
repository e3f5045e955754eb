"""ogimg CLI — render social preview cards or serve them over HTTP."""

import argparse
import sys
from pathlib import Path

from ogimg.config import load_settings
from ogimg.errors import PreviewError
from ogimg.fonts import DirectoryAssets, package_assets
from ogimg.logging import audit, get_logger, setup_logging
from ogimg.options import Options, validate
from ogimg.preview import Preview, encode_jpeg
from ogimg.remote import Resolver

log = get_logger("cli")


def _build_preview(args, settings) -> Preview:
    fonts_dir = args.fonts_dir or settings.fonts_dir
    assets = DirectoryAssets(fonts_dir) if fonts_dir else package_assets()
    missing = assets.missing()
    if missing:
        audit("cli.fonts_missing", logger=log, root=str(assets.root), missing=missing)
        print(f"error: font files not found in {assets.root}: {', '.join(missing)}", file=sys.stderr)
        print("Use --fonts-dir or OGIMG_FONTS_DIR to point at a directory that holds them.", file=sys.stderr)
        sys.exit(1)
    resolver = Resolver(timeout=settings.fetch_timeout, max_workers=settings.fetch_workers)
    return Preview(resolver=resolver, assets=assets)


def cmd_render(args, settings):
    """Render one preview to a JPEG file."""
    options = Options(
        canvas_w=args.width,
        canvas_h=args.height,
        opacity=args.opacity,
        ava_d=args.ava_d,
        title=args.title,
        title_size=args.title_size,
        author=args.author,
        author_size=args.author_size,
        label_l=args.label_l,
        label_r=args.label_r,
        label_size=args.label_size,
        bg=args.bg,
        ava_url=args.ava_url,
        logo_url=args.logo_url,
        logo_h=args.logo_h,
        quality=args.quality,
    )
    try:
        validate(options)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        image = _build_preview(args, settings).draw(options)
    except PreviewError as err:
        print(f"error: [{err.stage}] {err}", file=sys.stderr)
        sys.exit(1)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(encode_jpeg(image, options.quality))
    print(f"Rendered: {output} ({image.size[0]}x{image.size[1]}, quality {options.quality})")


def cmd_serve(args, settings):
    """Start the preview HTTP server."""
    from ogimg.server import create_app

    app = create_app(_build_preview(args, settings))
    host = args.host or settings.host
    port = args.port or settings.port
    print(f"Starting preview server on http://{host}:{port}")
    app.run(host=host, port=port, debug=args.debug)


def main(argv: list[str] | None = None):
    settings = load_settings()
    defaults = Options()

    parser = argparse.ArgumentParser(prog="ogimg", description="Social preview image generator")

    # Global flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--fonts-dir", default=None, help="Directory holding the font files")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a preview to a JPEG file")
    p_render.add_argument("--ava-url", required=True, help="Avatar URL or path")
    p_render.add_argument("--logo-url", required=True, help="Logo URL or path")
    p_render.add_argument("--bg", default=defaults.bg, help="Hex color, image URL or image path")
    p_render.add_argument("--title", default=defaults.title)
    p_render.add_argument("--author", default=defaults.author)
    p_render.add_argument("--label-l", default=defaults.label_l, help="Logo label, left part")
    p_render.add_argument("--label-r", default=defaults.label_r, help="Logo label, right part")
    p_render.add_argument("-W", "--width", type=int, default=defaults.canvas_w, help="Canvas width")
    p_render.add_argument("-H", "--height", type=int, default=defaults.canvas_h, help="Canvas height")
    p_render.add_argument("--opacity", type=float, default=defaults.opacity, help="Foreground opacity 0-1")
    p_render.add_argument("--ava-d", type=int, default=defaults.ava_d, help="Avatar diameter")
    p_render.add_argument("--title-size", type=float, default=defaults.title_size)
    p_render.add_argument("--author-size", type=float, default=defaults.author_size)
    p_render.add_argument("--label-size", type=float, default=defaults.label_size)
    p_render.add_argument("--logo-h", type=int, default=defaults.logo_h, help="Logo height")
    p_render.add_argument("-q", "--quality", type=int, default=defaults.quality, help="JPEG quality 1-100")
    p_render.add_argument("-o", "--output", default="output/preview.jpg", help="Output file path")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Start the preview HTTP server")
    p_serve.add_argument("--host", default=None, help=f"Interface to bind (default {settings.host})")
    p_serve.add_argument("--port", type=int, default=None, help=f"Port to listen on (default {settings.port})")
    p_serve.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "render": cmd_render,
        "serve": cmd_serve,
    }
    commands[args.command](args, settings)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
