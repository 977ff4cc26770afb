"""
nodefolio Command Line Interface

Usage:
    nodefolio <command> [options]

Commands:
    render      Composite an image through a chain of tools
    tools       List the available tools
    serve       Run the web host
    config      Write an example configuration file

Examples:
    nodefolio render painting.jpg -t invert -t smudge -o out.png
    nodefolio render painting.jpg -t ragdoll --frames 120 -o ragdoll.png
    nodefolio serve -m works_manifest.json --port 8000
    nodefolio config --example nodefolio.json
"""

import sys
import argparse
import logging
from pathlib import Path

from nodefolio import __version__


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='nodefolio',
        description='Node-graph portfolio renderer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'nodefolio {__version__}',
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging',
    )
    verbosity.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only log warnings and errors',
    )
    parser.add_argument(
        '-c', '--config',
        help='Configuration file (JSON)',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Render command
    render_parser = subparsers.add_parser(
        'render',
        help='Composite an image through a chain of tools',
    )
    render_parser.add_argument('input', help='Input image file')
    render_parser.add_argument(
        '-t', '--tool',
        action='append',
        dest='tools',
        default=[],
        metavar='KIND',
        help='Tool to insert, upstream first (can be used multiple times)',
    )
    render_parser.add_argument(
        '-o', '--output',
        default='out.png',
        help='Output image (default: out.png)',
    )
    render_parser.add_argument(
        '--frames',
        type=int,
        default=1,
        help='Frames to simulate before writing (default: 1)',
    )
    render_parser.add_argument(
        '--width',
        type=int,
        help='Viewer content width (default: from config)',
    )
    render_parser.add_argument(
        '--height',
        type=int,
        help='Viewer content height (default: from config)',
    )
    render_parser.add_argument(
        '--info',
        help='Info text file shown by the info tool',
    )

    # Tools command
    subparsers.add_parser(
        'tools',
        help='List the available tools',
    )

    # Serve command
    serve_parser = subparsers.add_parser(
        'serve',
        help='Run the web host',
    )
    serve_parser.add_argument(
        '-m', '--manifest',
        default='works_manifest.json',
        help='Works manifest (default: works_manifest.json)',
    )
    serve_parser.add_argument(
        '-r', '--media-root',
        help='Directory catalog paths are relative to (default: manifest directory)',
    )
    serve_parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Bind address (default: 127.0.0.1)',
    )
    serve_parser.add_argument(
        '--port',
        type=int,
        default=8000,
        help='Port (default: 8000)',
    )

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Write an example configuration file',
    )
    config_parser.add_argument(
        '--example',
        metavar='PATH',
        default='nodefolio.json',
        help='Output path (default: nodefolio.json)',
    )

    # Parse arguments
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch to appropriate command
    if args.command == 'render':
        return run_render(args)
    elif args.command == 'tools':
        return run_tools(args)
    elif args.command == 'serve':
        return run_serve(args)
    elif args.command == 'config':
        return run_config(args)
    else:
        parser.print_help()
        return 1


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-7s %(name)s: %(message)s',
        datefmt='%H:%M:%S',
    )


def build_config(args):
    """Config from ``--config`` (if given) plus environment overrides."""
    from nodefolio.core.config import Config, load_config, apply_env_overrides

    config = load_config(args.config) if args.config else Config()
    return apply_env_overrides(config)


def run_render(args):
    """Run headless render command."""
    from nodefolio.app import Portfolio, VIEWER_ID, WORK_ID
    from nodefolio.catalog import Catalog, CatalogItem
    from nodefolio.core.errors import NodefolioError
    from nodefolio.pipeline import ManualScheduler, make_text_fetcher, write_image

    config = build_config(args)
    if args.width:
        config.viewer.content_width = args.width
    if args.height:
        config.viewer.content_height = args.height

    source = Path(args.input)
    item = CatalogItem.single(str(source), info_path=args.info, category='other')
    scheduler = ManualScheduler()
    portfolio = Portfolio(
        config,
        Catalog({'other': [item]}),
        scheduler=scheduler,
        fetch_text=make_text_fetcher(),
    )

    print(f"Rendering {source}")
    portfolio.select('other', 0)
    pipeline = portfolio.pipeline
    if pipeline.source_image is None:
        print(f"Error: could not load {source}", file=sys.stderr)
        return 1

    upstream = WORK_ID
    try:
        for kind in args.tools:
            upstream = portfolio.editor.insert_tool_between(upstream, VIEWER_ID, kind)
            print(f"  + {kind} ({upstream})")
    except NodefolioError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.frames > 1:
        scheduler.run_frames(args.frames - 1)

    frame = pipeline.frame()
    if frame is None:
        frame = pipeline.render()
    for error in pipeline.errors:
        print(f"  ! {error}", file=sys.stderr)

    write_image(args.output, frame)
    height, width = frame.shape[:2]
    print(f"Wrote {args.output} ({width}x{height}, {pipeline.frame_count} renders)")
    portfolio.close()
    return 0


def run_tools(args):
    """List registered tool kinds."""
    from nodefolio.tools import default_registry

    registry = default_registry(build_config(args))
    for entry in registry.entries():
        print(f"{entry.kind:<10} {entry.label:<16} {entry.description}")
    return 0


def run_serve(args):
    """Run the web host."""
    from nodefolio.web.server import serve

    config = build_config(args)
    serve(args.manifest, host=args.host, port=args.port, config=config,
          media_root=args.media_root)
    return 0


def run_config(args):
    """Write an example configuration file."""
    from nodefolio.core.config import create_example_config

    create_example_config(args.example)
    return 0


if __name__ == '__main__':
    sys.exit(main())
