"""
nodefolio Web Host
==================

Serves one portfolio session over a small JSON API. The browser front end
draws the nodes and cables from ``/api/graph`` and shows the viewer frame
from ``/api/frame``.

To run:
    pip install fastapi uvicorn
    python -m nodefolio.web.server -m works_manifest.json

Then open http://localhost:8000/docs in your browser.
"""

import logging
from pathlib import Path

try:
    from fastapi import FastAPI, HTTPException
    from fastapi.responses import Response
    import uvicorn
except ImportError:
    print("Install dependencies: pip install fastapi uvicorn")
    raise

from nodefolio.app import Portfolio
from nodefolio.catalog.items import load_manifest
from nodefolio.core.config import Config
from nodefolio.core.errors import GraphIntegrityError, NodeNotFoundError, UnknownToolError
from nodefolio.core.surface import POINTER_EVENTS, PointerEvent
from nodefolio.pipeline.loader import encode_png
from nodefolio.pipeline.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)


def _require(body: dict, *keys: str) -> list:
    missing = [k for k in keys if k not in body]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing field(s): {', '.join(missing)}")
    return [body[k] for k in keys]


def create_app(portfolio: Portfolio) -> FastAPI:
    """Build the API around an existing portfolio session."""
    app = FastAPI(title="nodefolio")
    app.state.portfolio = portfolio

    @app.get("/api/graph")
    async def get_graph():
        return portfolio.to_dict()

    @app.get("/api/tools")
    async def list_tools():
        return [
            {"kind": e.kind, "label": e.label, "description": e.description}
            for e in portfolio.registry.entries()
        ]

    @app.post("/api/tools")
    async def insert_tool(body: dict):
        """Splice a tool into the cable from_id -> to_id."""
        kind, from_id, to_id = _require(body, "kind", "from_id", "to_id")
        try:
            node_id = portfolio.editor.insert_tool_between(from_id, to_id, kind)
        except UnknownToolError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NodeNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except GraphIntegrityError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"id": node_id}

    @app.delete("/api/tools/{node_id}")
    async def remove_tool(node_id: str):
        try:
            portfolio.editor.remove_tool_node(node_id)
        except NodeNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except GraphIntegrityError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"removed": node_id}

    @app.post("/api/select")
    async def select_item(body: dict):
        category, index = _require(body, "category", "index")
        try:
            item = portfolio.select(str(category), int(index))
        except IndexError:
            raise HTTPException(status_code=404, detail=f"No item {index} in {category}")
        await portfolio.viewer.wait_loaded()
        return {"title": item.title, "has_frame": portfolio.pipeline.current_frame is not None}

    @app.post("/api/page")
    async def show_page(body: dict):
        (name,) = _require(body, "name")
        portfolio.browser.request_page(str(name))
        return {"page": name}

    @app.get("/api/frame")
    async def get_frame():
        """Current viewer frame as PNG."""
        frame = portfolio.pipeline.frame()
        if frame is None:
            return Response(content=b"No image loaded", status_code=404)
        height, width = frame.shape[:2]
        return Response(
            content=encode_png(frame),
            media_type="image/png",
            headers={"X-Frame-Width": str(width), "X-Frame-Height": str(height)},
        )

    @app.post("/api/pointer")
    async def pointer(body: dict):
        """Forward a pointer event given in buffer coordinates."""
        kind, x, y = _require(body, "kind", "x", "y")
        if kind not in POINTER_EVENTS:
            raise HTTPException(status_code=400, detail=f"Unknown pointer event: {kind}")
        portfolio.pipeline.handle_pointer(
            PointerEvent(kind, float(x), float(y), int(body.get("button", 0)))
        )
        return {"frame_count": portfolio.pipeline.frame_count}

    return app


def serve(
    manifest: str | Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    config: Config | None = None,
    media_root: str | Path | None = None,
) -> None:
    """Load ``manifest`` and serve it until interrupted."""
    manifest = Path(manifest)
    catalog = load_manifest(manifest)
    portfolio = Portfolio(
        config,
        catalog,
        scheduler=AsyncioScheduler(),
        media_root=media_root or manifest.parent,
    )
    app = create_app(portfolio)

    print("=" * 50)
    print("nodefolio")
    print(f"Catalog: {manifest} ({len(catalog)} items)")
    print(f"Open http://{host}:{port}")
    print("=" * 50)
    uvicorn.run(app, host=host, port=port, log_level="warning")


def main():
    import argparse
    parser = argparse.ArgumentParser(description="nodefolio web host")
    parser.add_argument('-m', '--manifest', type=str, default='works_manifest.json',
                        help='Works manifest (default: works_manifest.json)')
    parser.add_argument('-p', '--port', type=int, default=8000, help='Port to run server on (default: 8000)')
    parser.add_argument('--host', type=str, default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    serve(args.manifest, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
