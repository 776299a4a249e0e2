"""
Graph REST routes.

All routes are mounted under /api by main.py. Editing routes drive the shared
GraphState session; /validate, /analyze and /generate are stateless and take
an optional graph body, falling back to the session graph when it is omitted.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from anchorflow.compiler import generate
from anchorflow.compiler.deserialiser import connection_to_json, graph_to_json, json_to_graph, node_to_json
from anchorflow.core.ConnectionValidator import validate_connection
from anchorflow.core.FlowAnalyzer import analyze_flow
from anchorflow.core.GraphPrimitives import Graph
from anchorflow.noderegistry.ModuleCatalog import (
    CatalogError,
    create_blank_node,
    create_node,
    list_templates,
)
from anchorflow.server.settings import GraphTooLargeError, get_settings
from anchorflow.server.state import GraphEditError, graph_state

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request bodies ────────────────────────────────────────────────────────────

class PortBody(BaseModel):
    id: str
    name: str
    type: str


class NodeBody(BaseModel):
    id: str
    type: str
    name: str
    inputs: List[PortBody] = Field(default_factory=list)
    outputs: List[PortBody] = Field(default_factory=list)


class ConnectionBody(BaseModel):
    id: str
    sourceNodeId: str
    sourcePortId: str
    targetNodeId: str
    targetPortId: str


class GraphBody(BaseModel):
    name: str = "untitled"
    nodes: List[NodeBody] = Field(default_factory=list)
    connections: List[ConnectionBody] = Field(default_factory=list)

    def to_graph(self) -> Graph:
        return json_to_graph(self.model_dump())


class EdgeBody(BaseModel):
    sourceNodeId: str
    sourcePortId: str
    targetNodeId: str
    targetPortId: str


class ValidateBody(EdgeBody):
    graph: Optional[GraphBody] = None


class AnalyzeBody(BaseModel):
    graph: Optional[GraphBody] = None


class GenerateBody(BaseModel):
    graph: Optional[GraphBody] = None
    programName: Optional[str] = None


class CreateNodeBody(BaseModel):
    templateId: Optional[str] = None
    kind: Optional[str] = None
    name: Optional[str] = None


# ── Helpers ───────────────────────────────────────────────────────────────────

def _graph_or_session(body: Optional[GraphBody]) -> Graph:
    graph = body.to_graph() if body is not None else graph_state.graph
    try:
        get_settings().check_graph_size(graph)
    except GraphTooLargeError as exc:
        raise HTTPException(status_code=413, detail=str(exc))
    return graph


# ── GET /modules ──────────────────────────────────────────────────────────────

@router.get("/modules")
async def get_modules() -> List[Dict[str, Any]]:
    return [t.to_dict() for t in list_templates()]


# ── GET /graph ────────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph() -> Dict[str, Any]:
    return graph_to_json(graph_state.graph)


# ── POST /graph/nodes ─────────────────────────────────────────────────────────

@router.post("/graph/nodes", status_code=201)
async def add_node(body: CreateNodeBody) -> Dict[str, Any]:
    if body.templateId:
        try:
            node = create_node(body.templateId, body.name)
        except CatalogError as exc:
            raise HTTPException(status_code=404, detail=exc.args[0])
    elif body.kind:
        node = create_blank_node(body.kind, body.name)
    else:
        raise HTTPException(status_code=400, detail="Either templateId or kind is required")
    graph_state.add_node(node)
    return node_to_json(node)


# ── POST /graph/start ─────────────────────────────────────────────────────────

@router.post("/graph/start", status_code=201)
async def add_start_node() -> Dict[str, Any]:
    try:
        node = graph_state.add_start_node()
    except GraphEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return node_to_json(node)


# ── DELETE /graph/nodes/:nodeId ───────────────────────────────────────────────

@router.delete("/graph/nodes/{node_id}", status_code=204)
async def delete_node(node_id: str) -> Response:
    try:
        graph_state.remove_node(node_id)
    except GraphEditError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=204)


# ── POST /graph/connections ───────────────────────────────────────────────────

@router.post("/graph/connections", status_code=201)
async def add_connection(body: EdgeBody) -> Dict[str, Any]:
    try:
        result, conn = graph_state.connect(
            body.sourceNodeId, body.sourcePortId, body.targetNodeId, body.targetPortId
        )
    except GraphEditError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    if conn is None:
        raise HTTPException(status_code=400, detail=result.to_dict())
    return connection_to_json(conn)


# ── DELETE /graph/connections/:connectionId ───────────────────────────────────

@router.delete("/graph/connections/{connection_id}", status_code=204)
async def delete_connection(connection_id: str) -> Response:
    try:
        graph_state.disconnect(connection_id)
    except GraphEditError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=204)


# ── POST /graph/undo, /graph/redo ─────────────────────────────────────────────

@router.post("/graph/undo")
async def undo() -> Dict[str, Any]:
    return graph_to_json(graph_state.undo())


@router.post("/graph/redo")
async def redo() -> Dict[str, Any]:
    return graph_to_json(graph_state.redo())


# ── POST /validate ────────────────────────────────────────────────────────────

@router.post("/validate")
async def validate(body: ValidateBody) -> Dict[str, Any]:
    graph = body.graph.to_graph() if body.graph is not None else graph_state.graph
    source = graph.get_node(body.sourceNodeId)
    target = graph.get_node(body.targetNodeId)
    if source is None or target is None:
        raise HTTPException(status_code=404, detail="Node not found")
    source_port = source.get_output(body.sourcePortId)
    target_port = target.get_input(body.targetPortId)
    if source_port is None or target_port is None:
        raise HTTPException(status_code=404, detail="Port not found")
    return validate_connection(source, source_port, target, target_port, graph.connections).to_dict()


# ── POST /analyze ─────────────────────────────────────────────────────────────

@router.post("/analyze")
async def analyze(body: AnalyzeBody) -> Dict[str, Any]:
    graph = _graph_or_session(body.graph)
    return analyze_flow(graph.nodes, graph.connections).to_dict()


# ── POST /generate ────────────────────────────────────────────────────────────

@router.post("/generate")
async def generate_code(body: GenerateBody) -> Dict[str, Any]:
    graph = _graph_or_session(body.graph)
    program_name = body.programName or get_settings().program_name
    artifact = generate(graph.nodes, graph.connections, program_name=program_name)
    logger.info(f"Generated '{artifact.program_name}' ({len(artifact.instructions)} modules)")
    out = artifact.to_dict()
    out["files"] = artifact.files()
    return out
