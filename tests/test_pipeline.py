"""
Tests for the render pipeline, image loading and schedulers.
"""

import asyncio
import logging

import cv2
import numpy as np
import pytest

from conftest import solid
from nodefolio.core.base import MANAGED, Tool
from nodefolio.core.config import Config
from nodefolio.core.errors import MediaLoadError, MetadataFetchError, ToolTransformError
from nodefolio.pipeline import (
    AsyncioScheduler,
    ManualScheduler,
    RenderPipeline,
    decode_image,
    encode_png,
    fetch_text,
    make_text_fetcher,
    read_image,
    default_scheduler,
)
from nodefolio.pipeline import render as render_module
from nodefolio.tools import InvertTool


class Marker(Tool):
    """Writes its own id into the red channel so the order is visible."""

    kind = "marker"

    def __init__(self, value):
        super().__init__()
        self.value = value

    def transform(self, buffer, surface):
        out = buffer.copy()
        out[..., 0] = out[..., 0] * 10 + self.value
        return out


class Broken(Tool):
    kind = "broken"

    def transform(self, buffer, surface):
        surface.fill_rect(0, 0, surface.width, surface.height, (1, 2, 3, 255))
        raise RuntimeError("tool exploded")


class WrongShape(Tool):
    kind = "wrong"

    def transform(self, buffer, surface):
        return np.zeros((1, 1, 4), dtype=np.uint8)


class Painter(Tool):
    kind = "painter"

    def transform(self, buffer, surface):
        surface.fill_rect(0, 0, 1, 1, (9, 9, 9, 255))
        return MANAGED


class EdgeList:
    """Graph stand-in with arbitrary (even multi-valued) edges."""

    def __init__(self, edges):
        self.edges = edges

    def list_edges(self):
        return list(self.edges)


def chain(store, *ids):
    for src, dst in zip(ids, ids[1:]):
        store.connect(src, dst)


@pytest.fixture
def pipeline(store):
    return RenderPipeline(store, "viewer")


class TestToolOrder:
    """Tests for graph-order tool resolution."""

    def test_order_follows_graph(self, store, pipeline):
        """Test execution order is upstream first regardless of registration."""
        chain(store, "work", "a", "b", "viewer")
        second, first = Marker(2), Marker(1)
        pipeline.add_tool(second, "b")
        pipeline.add_tool(first, "a")
        assert pipeline.tools() == [first, second]

        pipeline.set_image(solid(2, 2, (0, 0, 0, 255)))
        # (0 * 10 + 1) * 10 + 2
        assert pipeline.frame()[0, 0, 0] == 12

    def test_unreachable_tools_skipped(self, store, pipeline):
        """Test tools not upstream of the viewer are not run."""
        chain(store, "work", "a", "viewer")
        pipeline.add_tool(Marker(1), "a")
        pipeline.add_tool(Marker(2), "stray")
        assert [t.value for t in pipeline.tools()] == [1]
        assert pipeline.has_tools()

    def test_cycle_truncates(self, caplog):
        """Test a cycle stops the walk with a warning."""
        graph = EdgeList([("a", "viewer"), ("b", "a"), ("a", "b")])
        pipeline = RenderPipeline(graph, "viewer")
        a, b = Marker(1), Marker(2)
        pipeline._tools.update(a=a, b=b)
        with caplog.at_level(logging.WARNING):
            assert pipeline.resolve_tool_order() == [b, a]
        assert "Cycle" in caplog.text

    def test_cycle_through_viewer(self, store, pipeline):
        """Test a loop back into the viewer terminates."""
        store.connect("viewer", "a")
        store.connect("a", "viewer")
        tool = Marker(1)
        pipeline.add_tool(tool, "a")
        assert pipeline.tools() == [tool]

    def test_fan_in_follows_first_source(self):
        """Test only the first source in edge order is followed."""
        graph = EdgeList([("x", "viewer"), ("y", "viewer")])
        pipeline = RenderPipeline(graph, "viewer")
        x, y = Marker(1), Marker(2)
        pipeline._tools.update(x=x, y=y)
        assert pipeline.tools() == [x]


class TestRender:
    """Tests for compositing and failure isolation."""

    def test_no_image(self, pipeline):
        """Test render without an image returns None."""
        assert pipeline.render() is None
        assert pipeline.frame() is None
        assert pipeline.frame_count == 0

    def test_set_image_validates(self, pipeline):
        """Test only RGBA uint8 images are accepted."""
        with pytest.raises(ValueError):
            pipeline.set_image(np.zeros((2, 2, 3), dtype=np.uint8))
        with pytest.raises(ValueError):
            pipeline.set_image(np.zeros((2, 2, 4), dtype=np.float32))

    def test_target_size(self, pipeline):
        """Test aspect-preserving fit without upscaling."""
        assert pipeline.target_size(1400, 900) == (700, 450)
        assert pipeline.target_size(100, 50) == (100, 50)
        assert pipeline.target_size(7000, 10) == (700, 1)
        assert pipeline.target_size(10, 10000) == (1, 450)

    def test_image_is_scaled_into_content_box(self, pipeline):
        """Test large images are shrunk to the viewer."""
        pipeline.set_image(solid(1400, 900))
        assert pipeline.frame().shape == (450, 700, 4)
        assert pipeline.frame()[10, 10].tolist() == [10, 20, 30, 255]

    def test_invert_end_to_end(self, store, pipeline, image_file):
        """Test inverting the two-pixel image through the viewer."""
        chain(store, "work", "tool-0", "viewer")
        pipeline.add_tool(InvertTool(), "tool-0")
        pipeline.load_image_sync(str(image_file))
        assert pipeline.frame().tolist() == [[[245, 235, 225, 255], [55, 155, 205, 255]]]

    def test_double_invert_is_identity(self, store, pipeline):
        """Test two inverts in a row give back the original."""
        chain(store, "work", "a", "b", "viewer")
        pipeline.add_tool(InvertTool(), "a")
        pipeline.add_tool(InvertTool(), "b")
        image = solid(3, 2, (10, 200, 33, 128))
        pipeline.set_image(image)
        assert np.array_equal(pipeline.frame(), image)

    def test_failing_tool_is_isolated(self, store, pipeline):
        """Test a raising tool is skipped and the rest of the chain runs."""
        chain(store, "work", "bad", "inv", "viewer")
        pipeline.add_tool(Broken(), "bad")
        pipeline.add_tool(InvertTool(), "inv")
        pipeline.set_image(solid(2, 2, (10, 20, 30, 255)))

        assert pipeline.frame()[0, 0].tolist() == [245, 235, 225, 255]
        assert len(pipeline.errors) == 1
        error = pipeline.errors[0]
        assert isinstance(error, ToolTransformError)
        assert error.host_id == "bad"
        assert error.tool_kind == "broken"

    def test_failing_tool_paint_is_undone(self, store, pipeline):
        """Test paint from a failed tool does not leak to the surface."""
        chain(store, "work", "bad", "viewer")
        pipeline.add_tool(Broken(), "bad")
        pipeline.set_image(solid(2, 2))
        assert pipeline.surface.read_pixels()[0, 0].tolist() == [10, 20, 30, 255]

    def test_wrong_shape_is_an_error(self, store, pipeline):
        """Test a result with the wrong shape is rejected."""
        chain(store, "work", "w", "viewer")
        pipeline.add_tool(WrongShape(), "w")
        pipeline.set_image(solid(2, 2))
        assert pipeline.frame().shape == (2, 2, 4)
        assert len(pipeline.errors) == 1

    def test_errors_are_bounded(self, store):
        """Test the error log keeps only the newest entries."""
        config = Config()
        config.pipeline.max_errors = 2
        pipeline = RenderPipeline(store, "viewer", config=config)
        chain(store, "work", "bad", "viewer")
        pipeline.add_tool(Broken(), "bad")
        pipeline.set_image(solid(2, 2))
        for _ in range(4):
            pipeline.render()
        assert len(pipeline.errors) == 2

    def test_managed_tool(self, store, pipeline):
        """Test a tool that paints the surface feeds the next tool."""
        chain(store, "work", "p", "inv", "viewer")
        pipeline.add_tool(Painter(), "p")
        pipeline.add_tool(InvertTool(), "inv")
        pipeline.set_image(solid(2, 2, (0, 0, 0, 255)))
        frame = pipeline.frame()
        assert frame[0, 0].tolist() == [246, 246, 246, 255]
        assert frame[1, 1].tolist() == [255, 255, 255, 255]

    def test_tools_get_read_only_buffer(self, store, pipeline):
        """Test writing to the input buffer fails inside the tool."""
        class Scribbler(Tool):
            kind = "scribbler"

            def transform(self, buffer, surface):
                buffer[0, 0] = 0
                return buffer

        chain(store, "work", "s", "viewer")
        pipeline.add_tool(Scribbler(), "s")
        pipeline.set_image(solid(2, 2))
        assert pipeline.frame()[0, 0].tolist() == [10, 20, 30, 255]
        assert isinstance(pipeline.errors[0].cause, ValueError)

    def test_render_is_not_reentrant(self, store, pipeline):
        """Test a tool asking for a render mid-frame does not recurse."""
        class Eager(Tool):
            kind = "eager"

            def transform(self, buffer, surface):
                pipeline.render()
                return buffer

        chain(store, "work", "e", "viewer")
        pipeline.add_tool(Eager(), "e")
        pipeline.set_image(solid(2, 2))
        assert pipeline.frame_count == 1
        assert not pipeline.errors

    def test_cleanup(self, store, pipeline):
        """Test cleanup releases tools and the image."""
        chain(store, "work", "a", "viewer")
        pipeline.add_tool(InvertTool(), "a")
        pipeline.set_image(solid(2, 2))
        pipeline.cleanup()
        assert not pipeline.has_tools()
        assert pipeline.frame() is None


class TestImageLoading:
    """Tests for async image loads."""

    def test_stale_load_is_dropped(self, pipeline, monkeypatch):
        """Test an older load finishing last never replaces a newer one."""
        images = {"old": solid(2, 2, (1, 1, 1, 255)), "new": solid(2, 2, (2, 2, 2, 255))}

        async def scenario():
            gates = {"old": asyncio.Event(), "new": asyncio.Event()}

            async def fake_load(path):
                await gates[path].wait()
                return images[path]

            monkeypatch.setattr(render_module, "load_image_async", fake_load)
            old = asyncio.create_task(pipeline.load_image("old"))
            new = asyncio.create_task(pipeline.load_image("new"))
            await asyncio.sleep(0)
            gates["new"].set()
            assert await new is True
            gates["old"].set()
            assert await old is False

        asyncio.run(scenario())
        assert pipeline.source_path == "new"
        assert pipeline.frame()[0, 0, 0] == 2

    def test_failed_load_keeps_frame(self, pipeline, image_file, tmp_path):
        """Test a missing file raises and the previous frame stays."""
        asyncio.run(pipeline.load_image(str(image_file)))
        before = pipeline.frame()
        with pytest.raises(MediaLoadError):
            asyncio.run(pipeline.load_image(str(tmp_path / "missing.png")))
        assert np.array_equal(pipeline.frame(), before)


class TestLoader:
    """Tests for decoding and text fetching."""

    def test_decode_bgr_to_rgba(self):
        """Test OpenCV channel order is converted."""
        bgr = np.zeros((1, 1, 3), dtype=np.uint8)
        bgr[0, 0] = (255, 0, 0)  # blue
        ok, data = cv2.imencode(".png", bgr)
        assert ok
        assert decode_image(data.tobytes()).tolist() == [[[0, 0, 255, 255]]]

    def test_decode_gray_and_16bit(self):
        """Test grey and 16-bit images become RGBA uint8."""
        gray = np.full((2, 2), 7, dtype=np.uint8)
        _, data = cv2.imencode(".png", gray)
        assert decode_image(data.tobytes())[0, 0].tolist() == [7, 7, 7, 255]

        deep = np.full((1, 1, 3), 65535, dtype=np.uint16)
        _, data = cv2.imencode(".png", deep)
        rgba = decode_image(data.tobytes())
        assert rgba.dtype == np.uint8
        assert rgba[0, 0].tolist() == [255, 255, 255, 255]

    def test_decode_errors(self):
        """Test empty and garbage data raise MediaLoadError."""
        with pytest.raises(MediaLoadError):
            decode_image(b"")
        with pytest.raises(MediaLoadError):
            decode_image(b"definitely not an image")

    def test_read_image(self, image_file, tmp_path):
        """Test reading from disk keeps alpha and colours."""
        assert read_image(image_file)[0, 1].tolist() == [200, 100, 50, 255]
        with pytest.raises(MediaLoadError):
            read_image(tmp_path / "nope.png")

    def test_encode_png(self, tmp_path):
        """Test PNG encoding preserves RGBA."""
        rgba = solid(3, 1, (1, 2, 3, 4))
        path = tmp_path / "out.png"
        path.write_bytes(encode_png(rgba))
        assert np.array_equal(read_image(path), rgba)

    def test_fetch_text(self, tmp_path):
        """Test text fetching, relative roots and failures."""
        (tmp_path / "info.txt").write_text("  Oil on canvas.\n")
        assert asyncio.run(fetch_text(tmp_path / "info.txt")) == "Oil on canvas."

        fetch = make_text_fetcher(tmp_path)
        assert asyncio.run(fetch("info.txt")) == "Oil on canvas."
        with pytest.raises(MetadataFetchError):
            asyncio.run(fetch("missing.txt"))

    def test_fetch_text_invalid_path(self, tmp_path):
        """Test a path the OS rejects is a fetch error too."""
        fetch = make_text_fetcher(tmp_path)
        with pytest.raises(MetadataFetchError):
            asyncio.run(fetch("bad\x00name.txt"))


class TestManualScheduler:
    """Tests for the deterministic scheduler."""

    def test_timers_fire_in_order(self, scheduler):
        """Test due timers fire in time order."""
        calls = []
        scheduler.call_every(2.0, lambda: calls.append(("two", scheduler.now())))
        scheduler.call_every(3.0, lambda: calls.append(("three", scheduler.now())))
        scheduler.advance(6.0)
        assert calls == [("two", 2.0), ("three", 3.0), ("two", 4.0), ("three", 6.0), ("two", 6.0)]

    def test_cancel(self, scheduler):
        """Test a cancelled timer never fires again."""
        calls = []
        handle = scheduler.call_every(1.0, lambda: calls.append(1))
        scheduler.advance(2.0)
        assert handle.cancel() is True
        assert handle.cancel() is False
        scheduler.advance(5.0)
        assert calls == [1, 1]
        assert scheduler.pending == 0

    def test_cancel_queued_tick(self, scheduler):
        """Test cancelling from an earlier callback skips an already due tick."""
        calls = []
        second = None

        def first():
            calls.append("first")
            second.cancel()

        scheduler.call_every(1.0, first)
        second = scheduler.call_every(1.0, lambda: calls.append("second"))
        scheduler.advance(1.0)
        assert calls == ["first"]

    def test_frames(self, scheduler):
        """Test frame callbacks run once per frame until cancelled."""
        calls = []
        handle = scheduler.request_frames(lambda: calls.append(scheduler.now()))
        scheduler.run_frames(3)
        handle.cancel()
        scheduler.run_frames(2)
        assert len(calls) == 3
        assert calls[-1] == pytest.approx(3 / 60)

    def test_failing_callback_is_logged(self, scheduler, caplog):
        """Test an exception in a timer does not stop the timer."""
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("tick failed")

        scheduler.call_every(1.0, flaky)
        with caplog.at_level(logging.ERROR):
            scheduler.advance(2.0)
        assert len(calls) == 2
        assert "tick failed" in caplog.text

    def test_invalid_period(self, scheduler):
        """Test a non-positive period is rejected."""
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)


class TestAsyncioScheduler:
    """Tests for the event loop scheduler."""

    def test_repeats_until_cancelled(self):
        """Test the timer repeats and stops after cancel."""
        calls = []

        async def scenario():
            scheduler = AsyncioScheduler()
            handle = scheduler.call_every(0.01, lambda: calls.append(1))
            await asyncio.sleep(0.055)
            handle.cancel()
            count = len(calls)
            await asyncio.sleep(0.03)
            return count

        count = asyncio.run(scenario())
        assert count >= 2
        assert len(calls) == count


class TestDefaultScheduler:
    """Tests for choosing a scheduler from the calling context."""

    def test_manual_without_loop(self):
        """Test synchronous callers get a scheduler that never needs a loop."""
        scheduler = default_scheduler()
        assert isinstance(scheduler, ManualScheduler)
        calls = []
        scheduler.call_every(1.0, lambda: calls.append(scheduler.now()))
        scheduler.advance(2.0)
        assert calls == [1.0, 2.0]

    def test_asyncio_inside_loop(self):
        """Test code running in a loop gets that loop's scheduler."""

        async def scenario():
            scheduler = default_scheduler()
            assert isinstance(scheduler, AsyncioScheduler)
            assert scheduler.loop is asyncio.get_running_loop()

        asyncio.run(scenario())
