import os
import sys
import signal
import asyncio
import argparse
import logging

from pathlib import Path

from . import ServiceError, ServiceConfig, ServiceRunLoop, VARIANTS
from .cluster import ClusterTopologyReader, create_directory
from .process import GracefulShutdownClient

logger = logging.getLogger(__name__)


def create_arg_parser():
    parser = argparse.ArgumentParser(prog='rservice')

    parser.add_argument(
        '-d',
        '--conf-dir',
        default=os.environ.get('RSERVICE_CONF_DIR', '.'),
        type=lambda x: Path(x),
        help='Configuration directory (defaults to $RSERVICE_CONF_DIR or .)'
    )
    parser.add_argument(
        '-p',
        '--override-dir',
        default=None,
        type=lambda x: Path(x),
        help='Directory of service.override.conf (defaults to --conf-dir)'
    )
    parser.add_argument(
        '--variant',
        choices=sorted(VARIANTS),
        default=None,
        help='Override the configured service variant'
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='Debug logging'
    )
    subparsers = parser.add_subparsers(dest='action', required=True)

    subparsers.add_parser(
        'run', help='Start the managed process and supervise it until signalled'
    )
    subparsers.add_parser(
        'stop', help='Send the shutdown command to the managed process'
    )
    subparsers.add_parser('nodes', help='Print the discovered cluster nodes')

    return parser


def _log_listener_exit(listener: asyncio.Future):
    if listener.cancelled():
        return
    e = listener.exception()
    if e is not None:
        logger.error(
            'HTTP listener stopped: %s %s', type(e).__name__, e, exc_info=e
        )


async def _serve(config: ServiceConfig):
    run_loop = ServiceRunLoop.from_config(config)
    task = asyncio.ensure_future(run_loop.run())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    listener, stopped = None, asyncio.Event()
    if config.listen and run_loop.ctx.variant.http_listener:
        from .api import create_app
        app = create_app(run_loop)
        listener = asyncio.ensure_future(
            app.run_task(
                host=config.listen['host'],
                port=config.listen['port'],
                shutdown_trigger=stopped.wait
            )
        )
        listener.add_done_callback(_log_listener_exit)
        logger.info(
            'HTTP listener on %s:%d', config.listen['host'],
            config.listen['port']
        )

    try:
        await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if listener and not listener.done():
            stopped.set()
            await listener


async def _print_nodes(config: ServiceConfig):
    loop = asyncio.get_running_loop()
    directory = await loop.run_in_executor(
        None, create_directory, config['directory']
    )
    reader = ClusterTopologyReader(directory)
    for node in await reader.discover_nodes():
        print(node.name, node.address)


async def _stop(config: ServiceConfig):
    ctx = config.to_context()
    client = GracefulShutdownClient(timeout=ctx.shutdown_timeout)
    result = await client.request_shutdown(ctx.control_port)
    print(result.value)


def run_with_args(args):
    overrides = {'variant': args.variant} if args.variant else None
    config = ServiceConfig.load_dir(
        args.conf_dir, args.override_dir, overrides=overrides
    )
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config['log_level'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    if args.action == 'run':
        asyncio.run(_serve(config))
    elif args.action == 'stop':
        asyncio.run(_stop(config))
    elif args.action == 'nodes':
        asyncio.run(_print_nodes(config))
    else:
        raise RuntimeError(f'Invalid action "{args.action}"')


def main():
    args = create_arg_parser().parse_args()
    ec = 0
    try:
        run_with_args(args)
    except ServiceError as e:
        print('ERROR:', e, file=sys.stderr)
        if e.__cause__:
            print('ERROR:', e.__cause__, file=sys.stderr)
        ec = 1
    sys.exit(ec)


if __name__ == '__main__':
    main()
