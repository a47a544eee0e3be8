import argparse
import logging
import os
import sys

from .config import ServerConfig
from .server import Server
from .webserver import DEFAULT_PORT, WebServer

VERSION = '0.1.0'

LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'

def build_parser():
    parser = argparse.ArgumentParser(
        prog='upload-server',
        description='Serve a directory over HTTP and accept file uploads into it.')
    parser.add_argument('path', nargs='?', default=os.getcwd(),
                        help='directory to serve (defaults to the current directory)')
    parser.add_argument('-p', '--port', type=int, default=DEFAULT_PORT,
                        help='port to use (default %(default)s)')
    parser.add_argument('--host', default=WebServer.HOST,
                        help='address to listen on (default %(default)s)')
    parser.add_argument('--keep-upload-filename', action='store_true',
                        help="keep original upload file names: use 'filename.ext' "
                             "instead of 'filename-<random>.ext'")
    parser.add_argument('--spa', action='store_true',
                        help='answer every path that is not found with /index.html')
    parser.add_argument('--dev', action='store_true',
                        help='use development settings (debug logging)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {VERSION}')
    return parser

def config_from_args(args):
    return ServerConfig(args.path,
                        keep_upload_filename=args.keep_upload_filename,
                        spa_mode=args.spa)

def run(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.dev else logging.INFO,
                        format=LOG_FORMAT)
    config = config_from_args(args)
    if not os.path.isdir(config.root_dir):
        logging.error(f'Not a directory: {config.root_dir}')
        return 1
    if args.dev:
        for name, value in sorted(vars(args).items()):
            logging.debug(f'--{name} = {value}')
    server = Server(config, args.port, args.host)
    try:
        server.start()
    except OSError as exc:
        logging.error(f'Server error: {exc}')
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(run())
