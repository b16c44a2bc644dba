"""
Command-line interface: convert, batch, info and inspect.
"""
import argparse
import logging
import os
import sys

from .core.converter import IcoConverter
from .core.errors import IcoFormatError
from .core.ico_encoder import parse_ico
from .core.payloads import PAYLOAD_FORMATS, RESAMPLE_METHODS
from .utils.config import APP_NAME, APP_VERSION, DEFAULT_SIZES, get_config_path, load_settings
from .utils.image_io import format_size, get_file_info, get_output_path
from .utils.log import setup_logging


logger = logging.getLogger(__name__)


def parse_sizes(text):
    """Parse '16,32,48' into a list of ints, dropping non-positive values."""
    sizes = []
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid icon size: {part!r}") from None
        if value > 0:
            sizes.append(value)
    return sizes


def format_sizes(sizes):
    return ', '.join(f"{s}x{s}" for s in sizes)


def build_parser(settings):
    default_sizes = ','.join(str(s) for s in settings['sizes'])

    parser = argparse.ArgumentParser(
        prog='imageto-ico',
        description="Convert images to multi-size ICO files.",
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {APP_VERSION}")
    parser.add_argument('-v', '--verbose', action='store_true', help="Show debug output")
    parser.add_argument('--log-file', action='store_true', help="Also write a rotating log file")

    # Options shared by convert and batch
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-s', '--sizes', type=parse_sizes, default=parse_sizes(default_sizes),
                        help=f"Icon sizes, comma-separated (default: {default_sizes})")
    common.add_argument('-f', '--format', dest='payload_format', choices=PAYLOAD_FORMATS,
                        default=settings['payload_format'],
                        help="Payload encoding: png (modern) or bmp (legacy readers)")
    common.add_argument('-r', '--resample', choices=('auto',) + tuple(RESAMPLE_METHODS),
                        default=settings['resample'], help="Resampling filter")
    common.add_argument('-q', '--quiet', action='store_true', help="Suppress output messages")

    subparsers = parser.add_subparsers(dest='command')

    convert_parser = subparsers.add_parser('convert', aliases=['c'], parents=[common],
                                           help="Convert an image to ICO format")
    convert_parser.add_argument('input', help="Input image file path")
    convert_parser.add_argument('output', nargs='?', help="Output ICO file path (optional)")
    convert_parser.set_defaults(handler=cmd_convert)

    batch_parser = subparsers.add_parser('batch', aliases=['b'], parents=[common],
                                         help="Convert multiple images to ICO format")
    batch_parser.add_argument('inputs', nargs='+', help="Input image file paths")
    batch_parser.add_argument('-o', '--output', default=settings['batch_output_dir'],
                              help="Output directory")
    batch_parser.add_argument('-j', '--jobs', type=int, default=settings['workers'],
                              help="Number of files converted in parallel")
    batch_parser.set_defaults(handler=cmd_batch)

    info_parser = subparsers.add_parser('info', aliases=['i'],
                                        help="Show supported formats and default settings")
    info_parser.set_defaults(handler=cmd_info)

    inspect_parser = subparsers.add_parser('inspect', help="List the images inside an ICO file")
    inspect_parser.add_argument('file', help="ICO file path")
    inspect_parser.set_defaults(handler=cmd_inspect)

    return parser


def make_converter(args, settings):
    converter = IcoConverter()
    converter.set_parameters(
        payload_format=args.payload_format,
        resample=args.resample,
        compress_level=settings['compress_level'],
    )
    return converter


def cmd_convert(args, settings):
    converter = make_converter(args, settings)

    input_path = os.path.abspath(args.input)
    if not converter.is_supported(input_path):
        print("Unsupported file format!")
        print(f"Supported formats: {', '.join(converter.supported_formats())}")
        return 1

    output_path = os.path.abspath(args.output) if args.output else get_output_path(input_path)

    result = converter.convert(input_path, output_path, args.sizes)

    if not result.success:
        print(f"Error: {result.error}")
        return 1

    if not args.quiet:
        print("Conversion complete!")
        print(f"  Input:     {result.input_path}")
        print(f"  Output:    {result.output_path}")
        print(f"  Sizes:     {format_sizes(result.sizes)}")
        print(f"  File size: {format_size(result.file_size)}")
        print(f"  Original:  {result.original_format} ({result.original_size})")
    return 0


def cmd_batch(args, settings):
    converter = make_converter(args, settings)
    converter.set_parameters(workers=max(1, args.jobs))

    input_files = []
    for item in args.inputs:
        path = os.path.abspath(item)
        if not os.path.isfile(path):
            logger.warning("Skipping %s: not a file", item)
        elif not converter.is_supported(path):
            logger.warning("Skipping %s: unsupported format", item)
        else:
            input_files.append(path)

    if not input_files:
        print("No valid input files found!")
        return 1

    output_dir = os.path.abspath(args.output)
    if not args.quiet:
        print(f"Converting {len(input_files)} file(s)...")

    results = converter.batch_convert(input_files, output_dir, args.sizes)

    failed = [r for r in results if not r.success]
    if not args.quiet:
        for result in failed:
            print(f"Failed: {os.path.basename(result.input_path)} - {result.error}")

    if not args.quiet:
        print("Batch conversion complete!")
        print(f"  Total files: {len(results)}")
        print(f"  Successful:  {len(results) - len(failed)}")
        if failed:
            print(f"  Failed:      {len(failed)}")
        print(f"  Output directory: {output_dir}")

    return 1 if failed else 0


def cmd_info(args, settings):
    converter = IcoConverter()
    print(f"{APP_NAME} {APP_VERSION}")
    print("Supported Input Formats:")
    print(f"  {', '.join(converter.supported_formats())}")
    print("Default Icon Sizes:")
    print(f"  {format_sizes(DEFAULT_SIZES)}")
    print("Usage Examples:")
    print("  imageto-ico convert image.png")
    print("  imageto-ico convert image.png output.ico -s 16,32,48")
    print("  imageto-ico batch *.png -o icons")
    print("  imageto-ico inspect output.ico")
    return 0


def cmd_inspect(args, settings):
    info = get_file_info(args.file)
    if info is None:
        print(f"Error: file not found: {args.file}")
        return 1

    try:
        with open(args.file, 'rb') as f:
            data = f.read()
        entries = parse_ico(data)
    except (OSError, IcoFormatError) as e:
        print(f"Error: {e}")
        return 1

    print(f"{info['name']}: {len(entries)} image(s), {info['size_str']}")
    for index, entry in enumerate(entries):
        kind = 'PNG' if data[entry.offset:entry.offset + 8] == b'\x89PNG\r\n\x1a\n' else 'DIB'
        print(f"  #{index}: {entry.width}x{entry.height} {entry.bit_count}bpp "
              f"{kind} {entry.size} bytes @ {entry.offset}")
    return 0


def main(argv=None):
    """Main entry point."""
    settings = load_settings()
    try:
        parser = build_parser(settings)
    except (argparse.ArgumentTypeError, TypeError) as e:
        print(f"Error: invalid sizes in settings file {get_config_path()}: {e}")
        return 1
    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif getattr(args, 'quiet', False):
        level = logging.ERROR
    else:
        level = logging.WARNING
    setup_logging(level, log_file=args.log_file)

    if not getattr(args, 'handler', None):
        parser.print_help()
        return 0

    try:
        return args.handler(args, settings)
    except ValueError as e:
        # Bad values from the settings file
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
