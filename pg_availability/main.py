"""Main application entry point for the PG room availability board.

This module defines the FastAPI application, configures logging, wires the
``RoomBoard`` to the PG backend client and serves both a JSON API and a
minimal HTML wallboard.

Endpoints:
  - ``/api/board``: board state, last fetch time, last error and statistics.
  - ``/api/branch``: select the branch to display (full reload).
  - ``/api/refresh``: reload the rooms of the selected branch.
  - ``/api/floors``: floors of the selected branch.
  - ``/api/rooms``: filtered room cards; ``/api/rooms/{id}``: room detail.
  - ``/api/stats``: occupancy statistics over all rooms.
  - ``/api/notifications``: pending notifications, returned once.
  - ``/healthz``: simple health check endpoint.
  - ``/``: serve the wallboard UI.

Data is only fetched from the backend on branch selection or an explicit
refresh; failed fetches keep the previously loaded rooms and are reported
through ``lastError`` and the notification queue.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .availability import build_room_card, build_room_detail, filter_rooms
from .board import RoomBoard
from .config import settings
from .errors import BoardBusyError, NoBranchSelectedError
from .models import StatusFilter
from .pg_client import get_client

logger = logging.getLogger("pg_availability")
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

board = RoomBoard(get_client(), trust_server_metadata=settings.trust_server_metadata)


def get_board() -> RoomBoard:
    """Return the board shared by all requests."""
    return board


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.default_branch_id:
        logger.info("Loading default branch %s", settings.default_branch_id)
        board.select_branch(settings.default_branch_id)
    yield


app = FastAPI(title="PG Room Availability", lifespan=lifespan)


class BranchSelection(BaseModel):
    branchId: str = Field(min_length=1)


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def _require_branch(board: RoomBoard) -> str:
    branch_id = board.branch_id
    if branch_id is None:
        raise HTTPException(status_code=409, detail="Select a branch first")
    return branch_id


@app.get("/api/board")
def api_board(board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Return the state of the board."""
    return board.snapshot().model_dump(mode="json")


@app.put("/api/branch")
def api_select_branch(selection: BranchSelection, board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Select a branch and reload its floors and rooms."""
    board.select_branch(selection.branchId)
    return board.snapshot().model_dump(mode="json")


@app.post("/api/refresh")
def api_refresh(board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Reload the rooms of the selected branch."""
    try:
        board.refresh()
    except (BoardBusyError, NoBranchSelectedError) as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return board.snapshot().model_dump(mode="json")


@app.get("/api/floors")
def api_floors(board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Return the floors of the selected branch."""
    _require_branch(board)
    floors = board.floors()
    return {"count": len(floors), "items": [f.model_dump() for f in floors]}


@app.get("/api/rooms")
def api_rooms(
    search: str = "",
    status: StatusFilter = StatusFilter.ALL,
    floor: str = "all",
    sharing: str = "all",
    board: RoomBoard = Depends(get_board),
) -> Dict[str, Any]:
    """Return the rooms matching the filters, with statistics over all rooms."""
    _require_branch(board)
    rooms = board.rooms()
    shown = filter_rooms(rooms, search=search, status=status, floor=floor, sharing=sharing)
    snapshot = board.snapshot()
    return {
        "shown": len(shown),
        "total": len(rooms),
        "items": [build_room_card(r).model_dump(mode="json") for r in shown],
        "stats": snapshot.stats.model_dump(mode="json"),
        "lastFetchedAt": snapshot.model_dump(mode="json")["lastFetchedAt"],
        "lastError": snapshot.lastError,
    }


@app.get("/api/rooms/{room_id}")
def api_room_detail(room_id: str, board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Return the detail view of a single room."""
    _require_branch(board)
    room = board.room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"Room {room_id} not found")
    return build_room_detail(room).model_dump(mode="json")


@app.get("/api/stats")
def api_stats(board: RoomBoard = Depends(get_board)) -> Dict[str, Any]:
    """Return occupancy statistics over all rooms of the selected branch."""
    return board.stats().model_dump(mode="json")


@app.get("/api/notifications")
def api_notifications(board: RoomBoard = Depends(get_board)) -> List[Dict[str, Any]]:
    """Return and clear pending notifications."""
    return [n.model_dump(mode="json") for n in board.drain_notifications()]


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"ok": True, "time": _utcnow().isoformat().replace("+00:00", "Z")}


@app.get("/", response_class=HTMLResponse)
def board_page() -> HTMLResponse:
    """Serve the single page wallboard.

    The UI is embedded here rather than in a separate template so the service
    deploys as a single package without a frontend build chain.
    """
    html = f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Room Availability</title>
  <style>
    body {{ margin: 0; font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial; background: #f5f6fa; color: #1d2333; }}
    header {{ display: flex; gap: 12px; align-items: center; padding: 16px 22px; background: #fff; border-bottom: 1px solid #e3e6ee; }}
    h1 {{ margin: 0; font-size: 22px; }}
    .meta {{ opacity: 0.7; font-size: 13px; }}
    .controls {{ display: flex; gap: 8px; margin-left: auto; }}
    input, select, button {{ padding: 8px 10px; border-radius: 8px; border: 1px solid #cfd4e0; font-size: 14px; background: #fff; }}
    button:disabled {{ opacity: 0.5; }}
    .stats {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 10px; padding: 16px 22px 0; }}
    .stat {{ background: #fff; border: 1px solid #e3e6ee; border-radius: 12px; padding: 12px; text-align: center; }}
    .stat b {{ display: block; font-size: 22px; }}
    .errorbar {{ margin: 14px 22px 0; padding: 10px 12px; border-radius: 10px; background: #fff4e0; border: 1px solid #f3c77a; font-size: 13px; }}
    .noticebar {{ margin: 14px 22px 0; padding: 10px 12px; border-radius: 10px; background: #e8f1ff; border: 1px solid #9bbcf0; font-size: 13px; }}
    main {{ padding: 16px 22px 28px; }}
    .grid {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(150px, 1fr)); gap: 12px; }}
    .card {{ background: #fff; border: 1px solid #e3e6ee; border-radius: 12px; overflow: hidden; cursor: pointer; text-align: center; }}
    .card .bar {{ height: 6px; }}
    .card .num {{ font-size: 24px; font-weight: 700; margin: 12px 0 6px; }}
    .card .sub {{ font-size: 12px; opacity: 0.75; padding-bottom: 12px; }}
    .available .bar {{ background: #22c55e; }}
    .full .bar {{ background: #3b82f6; }}
    .partial .bar {{ background: #f97316; }}
    .notice_period .bar {{ background: #eab308; }}
    #detail {{ margin-top: 18px; background: #fff; border: 1px solid #e3e6ee; border-radius: 12px; padding: 14px; display: none; }}
  </style>
</head>
<body>
  <header>
    <h1>Room Availability</h1>
    <div class="meta" id="meta">No branch selected</div>
    <div class="controls">
      <input id="branch" placeholder="Branch id" />
      <input id="search" placeholder="Search rooms or residents" />
      <select id="status">
        <option value="all">All statuses</option>
        <option value="available">Available</option>
        <option value="occupied">Occupied</option>
        <option value="partial">Partial</option>
        <option value="notice">Notice Period</option>
      </select>
      <select id="floor"><option value="all">All floors</option></select>
      <select id="sharing">
        <option value="all">All sharing</option>
        <option value="1-sharing">1 sharing</option>
        <option value="2-sharing">2 sharing</option>
        <option value="3-sharing">3 sharing</option>
        <option value="4-sharing">4 sharing</option>
      </select>
      <button id="refresh">Refresh</button>
    </div>
  </header>
  <div id="error" class="errorbar" style="display:none;"></div>
  <div id="notices" class="noticebar" style="display:none;"></div>
  <div class="stats" id="stats"></div>
  <main>
    <div class="meta" id="shown"></div>
    <div class="grid" id="grid"></div>
    <div id="detail"></div>
  </main>
<script>
const DEFAULT_BRANCH = {json.dumps(settings.default_branch_id or "")};
const $ = id => document.getElementById(id);

function showError(text) {{
  $("error").style.display = text ? "block" : "none";
  $("error").textContent = text || "";
}}
async function getJson(url, opts) {{
  const r = await fetch(url, Object.assign({{cache: "no-store"}}, opts || {{}}));
  const data = await r.json();
  if (!r.ok) throw new Error(data.detail || r.statusText);
  return data;
}}
async function showNotifications() {{
  try {{
    const items = await getJson("/api/notifications");
    $("notices").style.display = items.length ? "block" : "none";
    $("notices").textContent = items.map(n => n.message).join(" · ");
  }} catch (e) {{
    showError(`${{e.message}}`);
  }}
}}
function renderStats(s) {{
  const items = [["Total Rooms", s.totalRooms], ["Total Beds", s.totalBeds], ["Available", s.availableBeds],
    ["Occupied", s.occupiedBeds], ["Notice Period", s.noticePeriodBeds], ["Occupancy", s.occupancyRate + "%"]];
  $("stats").innerHTML = "";
  items.forEach(([label, value]) => {{
    const d = document.createElement("div");
    d.className = "stat";
    const b = document.createElement("b");
    b.textContent = value;
    d.appendChild(b);
    d.appendChild(document.createTextNode(label));
    $("stats").appendChild(d);
  }});
}}
async function loadFloors() {{
  const data = await getJson("/api/floors");
  const sel = $("floor");
  sel.innerHTML = '<option value="all">All floors</option>';
  data.items.forEach(f => {{
    const o = document.createElement("option");
    o.value = f.id;
    o.textContent = f.name || "N/A";
    sel.appendChild(o);
  }});
}}
async function showDetail(roomId) {{
  const room = await getJson(`/api/rooms/${{encodeURIComponent(roomId)}}`);
  const lines = [`Room ${{room.roomNumber}} · ${{room.floorName || "N/A"}} · ${{room.sharingType || ""}}`,
    `${{room.statusLabel}} · cost ${{room.cost}} · per bed ${{room.costPerBed}} · ${{room.occupancyPercent}}% occupied`];
  room.beds.forEach(b => lines.push(`Bed ${{b.bedNumber}}: ${{b.label}}${{b.residentName ? " · " + b.residentName : ""}}`));
  $("detail").style.display = "block";
  $("detail").innerText = lines.join("\\n");
}}
async function render() {{
  try {{
    const params = new URLSearchParams({{search: $("search").value, status: $("status").value, floor: $("floor").value, sharing: $("sharing").value}});
    const data = await getJson(`/api/rooms?${{params}}`);
    renderStats(data.stats);
    showError(data.lastError ? `Warning: ${{data.lastError}}` : "");
    $("shown").textContent = `Showing ${{data.shown}} of ${{data.total}} rooms`;
    $("meta").textContent = data.lastFetchedAt ? `Updated ${{new Date(data.lastFetchedAt).toLocaleTimeString()}}` : "Not loaded yet";
    $("grid").innerHTML = "";
    data.items.forEach(room => {{
      const card = document.createElement("div");
      card.className = `card ${{room.displayStatus}}`;
      card.innerHTML = '<div class="bar"></div><div class="num"></div><div class="sub"></div>';
      card.querySelector(".num").textContent = room.roomNumber;
      card.querySelector(".sub").textContent = `${{room.statusLabel}} · ${{room.availableBedCount}}/${{room.numberOfBeds}} available`;
      card.addEventListener("click", () => showDetail(room.roomId));
      $("grid").appendChild(card);
    }});
  }} catch (e) {{
    showError(`${{e.message}}`);
  }}
}}
async function selectBranch(branchId) {{
  await getJson("/api/branch", {{method: "PUT", headers: {{"Content-Type": "application/json"}}, body: JSON.stringify({{branchId}})}});
  await loadFloors();
  await render();
  await showNotifications();
}}
$("refresh").addEventListener("click", async () => {{
  $("refresh").disabled = true;
  try {{
    await getJson("/api/refresh", {{method: "POST"}});
  }} catch (e) {{
    showError(`Warning: failed to refresh: ${{e.message}}`);
  }} finally {{
    $("refresh").disabled = false;
  }}
  await render();
  await showNotifications();
}});
$("branch").addEventListener("change", () => selectBranch($("branch").value));
["search", "status", "floor", "sharing"].forEach(id => $(id).addEventListener(id === "search" ? "input" : "change", render));
if (DEFAULT_BRANCH) {{
  $("branch").value = DEFAULT_BRANCH;
  loadFloors().then(render);
}}
</script>
</body>
</html>
"""  # noqa: E501
    return HTMLResponse(html)
