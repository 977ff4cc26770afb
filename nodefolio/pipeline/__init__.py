"""
Pipeline module - Frame compositing, image loading and scheduling.
"""

from nodefolio.pipeline.loader import (
    decode_image,
    read_image,
    encode_png,
    write_image,
    load_image_async,
    fetch_text,
    make_text_fetcher,
)
from nodefolio.pipeline.render import RenderPipeline
from nodefolio.pipeline.scheduler import (
    Handle,
    Scheduler,
    AsyncioScheduler,
    ManualScheduler,
    default_scheduler,
)

__all__ = [
    "decode_image",
    "read_image",
    "encode_png",
    "write_image",
    "load_image_async",
    "fetch_text",
    "make_text_fetcher",
    "RenderPipeline",
    "Handle",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "default_scheduler",
]
