"""
Blocs — hand-off éditeur, schémas, rendu serveur, posts de blocs.

GET  /api/blocks                         → Block Map JSON (telle que chargée)
GET  /api/blocks/editor.js               → const blockLabBlocks = {...}
GET  /api/blocks/assets                  → URLs script/style + version
GET  /api/blocks/{name}                  → schéma d'attributs enregistré
POST /api/blocks/{name}/render?context=  → {"rendered": "<html>"}
POST /api/blocks/reload?token=...        → recharge + ré-enregistre
POST /api/block-posts?token=...          → crée/maj un post de blocs
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...database import get_db, db_upsert_block_post
from ...loader import Loader, parse_block_source
from ...models import BlockPostInput
from ...render import RenderContext

log = logging.getLogger(__name__)
router = APIRouter(tags=["Blocks"])


# ── Helpers ────────────────────────────────────────────────────────────────────

def get_loader(request: Request) -> Loader:
    return request.app.state.loader


def _check_token(request: Request) -> str:
    token = (request.query_params.get("token")
             or request.cookies.get("admin_token", ""))
    if token != request.app.state.settings.admin_token:
        raise HTTPException(403, "Accès refusé")
    return token


# ── Editor hand-off ────────────────────────────────────────────────────────────

@router.get("/api/blocks")
def blocks_json(loader: Loader = Depends(get_loader)):
    return Response(content=loader.blocks, media_type="application/json")


@router.get("/api/blocks/editor.js")
def blocks_editor_script(loader: Loader = Depends(get_loader)):
    return Response(content=loader.inline_script(), media_type="application/javascript")


@router.get("/api/blocks/assets")
def blocks_assets(loader: Loader = Depends(get_loader)):
    assets = loader.editor_assets()
    assets.pop("inline_script")
    return assets


@router.post("/api/blocks/reload")
def blocks_reload(request: Request, loader: Loader = Depends(get_loader)):
    _check_token(request)
    loader.reload()
    return {"success": True, "blocks": sorted(loader.registry)}


# ── Registered blocks ──────────────────────────────────────────────────────────

@router.get("/api/blocks/{name}")
def block_schema(name: str, loader: Loader = Depends(get_loader)):
    block_type = loader.registry.get(name)
    if block_type is None:
        raise HTTPException(404, f"Bloc '{name}' introuvable")
    return {"name": block_type.name, "attributes": block_type.attributes}


@router.post("/api/blocks/{name}/render")
def block_render(
    name: str,
    attributes: Dict[str, Any] = Body(default={}),
    context: Optional[str] = Query(None, description="'edit' = aperçu éditeur"),
    loader: Loader = Depends(get_loader),
):
    block_type = loader.registry.get(name)
    if block_type is None:
        raise HTTPException(404, f"Bloc '{name}' introuvable")
    return {"rendered": block_type.render(attributes, RenderContext(context=context))}


# ── Block posts ────────────────────────────────────────────────────────────────

@router.post("/api/block-posts")
def block_post_upsert(
    req: BlockPostInput,
    request: Request,
    db: Session = Depends(get_db),
    loader: Loader = Depends(get_loader),
):
    _check_token(request)
    if parse_block_source(req.content, f"post {req.slug}") is None:
        raise HTTPException(422, "post_content invalide : JSON {block_key: {name, fields}} attendu")
    post = db_upsert_block_post(db, req.slug, req.content, req.status.value)
    loader.reload()
    log.info("Post de blocs '%s' sauvegardé (%s)", post.slug, post.post_status)
    return {
        "success": True,
        "result": {"slug": post.slug, "status": post.post_status},
        "message": f"Post '{post.slug}' sauvegardé",
        "error": None,
    }
