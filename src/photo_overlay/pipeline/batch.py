import os
import time
from typing import Callable, Iterable, Optional

from photo_overlay.errors import ExtractionError, IoError, OverlayError
from photo_overlay.logger import create_logger
from photo_overlay.models import (
    BatchProcessingResult,
    PhotoMetadata,
    ProcessingFailure,
    ProcessingSettings,
)
from photo_overlay.pipeline.render import RenderPipeline

MetadataExtractor = Callable[[str], PhotoMetadata]


def batch_output_path(input_path: str, settings: ProcessingSettings, output_dir: str) -> str:
    stem = os.path.splitext(os.path.basename(input_path))[0] or "processed"
    return os.path.join(output_dir, f"{stem}_processed.{settings.output_format.extension}")


class BatchRenderer:
    """
    Renders a list of files one by one. A failing item is recorded with its
    category and never stops the rest of the batch.
    """

    def __init__(self, extractor: MetadataExtractor, pipeline: Optional[RenderPipeline] = None):
        self.extractor = extractor
        self.pipeline = pipeline if pipeline is not None else RenderPipeline()

    def extract(self, path: str) -> PhotoMetadata:
        try:
            return self.extractor(path)
        except ExtractionError:
            raise
        except Exception as e:
            # The extractor is an external collaborator: any failure is terminal for this file
            raise ExtractionError(f"Failed to read metadata from {path}: {e}", path=path) from e

    def run(self, image_paths: Iterable[str], settings: ProcessingSettings, output_dir: str) -> BatchProcessingResult:
        paths = list(image_paths)
        start = time.perf_counter()

        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            raise IoError(f"Cannot create output directory {output_dir}: {e}", path=output_dir)

        result = BatchProcessingResult(total_files=len(paths))

        for index, input_path in enumerate(paths, start=1):
            log = create_logger(file_id=os.path.basename(input_path))
            output_path = batch_output_path(input_path, settings, output_dir)
            log.info(f"Processing ({index}/{len(paths)})")

            try:
                metadata = self.extract(input_path)
                info = self.pipeline.render(
                    input_path,
                    metadata,
                    settings.overlay_settings,
                    settings.frame_settings,
                    output_path,
                    settings.quality,
                )
            except OverlayError as e:
                log.error(f"❌ {e.category.value}: {e.message}")
                result.failed.append(ProcessingFailure(
                    file_path=input_path,
                    error_message=e.message,
                    error_type=e.category,
                ))
                continue

            result.successful.append(info)

        result.total_time_ms = int((time.perf_counter() - start) * 1000)
        create_logger().success(
            f"Batch done: {len(result.successful)}/{result.total_files} succeeded "
            f"in {result.total_time_ms} ms"
        )
        return result

