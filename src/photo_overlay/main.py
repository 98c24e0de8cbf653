import argparse
import json
import os
import sys
from typing import List, Optional

from loguru import logger

from photo_overlay import logger as _logging_setup
from photo_overlay.api import OverlayService
from photo_overlay.crash_handler import install_crash_handler
from photo_overlay.errors import OverlayError


def _load_settings(path: Optional[str]) -> dict:
    if not path:
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise SystemExit(f"Cannot read settings file {path}: {e}")
    if not isinstance(data, dict):
        raise SystemExit(f"Settings file {path} must contain a JSON object")
    return data


def _report_error(response: dict) -> int:
    error = response['error']
    logger.error(f"[{error['category']}] {error['message']}")
    return 1


def cmd_render(service: OverlayService, args) -> int:
    settings = _load_settings(args.settings)
    metadata = service.batch.extract(args.input)
    response = service.render_to_file({
        'inputPath': args.input,
        'outputPath': args.output,
        'metadata': metadata.to_dict(),
        'overlaySettings': settings.get('overlaySettings'),
        'frameSettings': settings.get('frameSettings'),
        'quality': args.quality,
    })
    if not response['ok']:
        return _report_error(response)
    info = response['data']
    print(f"{info['outputPath']}: {info['originalSize']} -> {info['processedSize']} bytes "
          f"in {info['processingTimeMs']} ms")
    return 0


def cmd_batch(service: OverlayService, args) -> int:
    settings = _load_settings(args.settings)
    settings['outputFormat'] = args.format
    settings['quality'] = args.quality
    response = service.render_batch(args.inputs, settings, args.output_dir)
    if not response['ok']:
        return _report_error(response)

    result = response['data']
    for item in result['failed']:
        print(f"FAILED {item['filePath']} [{item['errorType']}]: {item['errorMessage']}")
    print(f"{len(result['successful'])}/{result['totalFiles']} succeeded in {result['totalTimeMs']} ms")
    return 1 if result['failed'] else 0


def cmd_preview(service: OverlayService, args) -> int:
    settings = _load_settings(args.settings)
    settings.setdefault('maxWidth', args.max_width)
    settings.setdefault('maxHeight', args.max_height)
    response = service.generate_preview_bytes(args.input, settings)
    if not response['ok']:
        return _report_error(response)
    with open(args.output, 'wb') as f:
        f.write(response['data'])
    print(f"Preview written to {args.output} ({len(response['data'])} bytes)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='photo-overlay',
        description="Overlay camera metadata and decorative frames onto photos.",
    )
    sub = parser.add_subparsers(dest='command', required=True)

    render = sub.add_parser('render', help="Render one image to a file")
    render.add_argument('input')
    render.add_argument('output', help="Output path; .png is lossless, anything else JPEG")
    render.add_argument('--settings', help="JSON file with overlaySettings / frameSettings")
    render.add_argument('--quality', type=int, default=90, help="JPEG quality 1-100")
    render.set_defaults(func=cmd_render)

    batch = sub.add_parser('batch', help="Render many images into a directory")
    batch.add_argument('inputs', nargs='+')
    batch.add_argument('--output-dir', required=True)
    batch.add_argument('--settings')
    batch.add_argument('--format', choices=['jpeg', 'png'], default='jpeg')
    batch.add_argument('--quality', type=int, default=90)
    batch.set_defaults(func=cmd_batch)

    preview = sub.add_parser('preview', help="Write a PNG preview")
    preview.add_argument('input')
    preview.add_argument('output')
    preview.add_argument('--settings')
    preview.add_argument('--max-width', type=int, default=800)
    preview.add_argument('--max-height', type=int, default=600)
    preview.set_defaults(func=cmd_preview)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    install_crash_handler()
    args = build_parser().parse_args(argv)

    if hasattr(args, 'input') and not os.path.isfile(args.input):
        logger.error(f"Input not found: {args.input}")
        return 1

    service = OverlayService()
    try:
        return args.func(service, args)
    except OverlayError as e:
        logger.error(f"[{e.category.value}] {e.message}")
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
