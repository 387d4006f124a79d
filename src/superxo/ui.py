"""FastAPI application serving the SuperXO client page and the game WebSocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from .config import Settings
from .handler import ConnectionHandler
from .protocol import ServerMessage
from .rooms import RoomRegistry

logger = logging.getLogger(__name__)


class WebSocketPeer:
    """Room-facing side of a WebSocket: sends are queued and written by ``pump``."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.live = True
        self._outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()

    def send(self, message: ServerMessage) -> None:
        if self.live:
            self._outbox.put_nowait(message.dump())

    async def pump(self) -> None:
        while True:
            payload = await self._outbox.get()
            try:
                await self.websocket.send_json(payload)
            except (RuntimeError, WebSocketDisconnect):
                logger.debug("Socket closed while sending %s", payload.get("type"))
                self.live = False
                return


def create_app(
    settings: Optional[Settings] = None, registry: Optional[RoomRegistry] = None
) -> FastAPI:
    """Build an application with its own room registry."""

    settings = settings or Settings.from_env()
    registry = registry or RoomRegistry(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        registry.close()

    app = FastAPI(
        title="SuperXO",
        description="Two-player Super Tic-Tac-Toe over WebSockets",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry

    @app.get("/", response_class=HTMLResponse)
    @app.get("/index.html", response_class=HTMLResponse)
    def index() -> str:
        return HTML_PAGE

    @app.websocket("/ws")
    async def play(websocket: WebSocket) -> None:
        await websocket.accept()
        peer = WebSocketPeer(websocket)
        handler = ConnectionHandler(registry, peer)
        writer = asyncio.create_task(peer.pump())
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is not None:
                    handler.handle_text(raw)
        except WebSocketDisconnect:
            pass
        finally:
            peer.live = False
            handler.on_close()
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    return app


HTML_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>SuperXO</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem;
        background: radial-gradient(circle at top, #f2f5ff, #cfd8ff 70%);
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: 2rem;
        width: min(640px, 100%);
        text-align: center;
      }
      button,
      input {
        font: inherit;
        padding: 0.5rem 0.9rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
      }
      button { cursor: pointer; }
      #status { min-height: 1.5rem; font-weight: 600; }
      .meta, .mini {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
      }
      .meta { gap: 8px; margin: 1rem auto; width: min(480px, 100%); }
      .mini {
        gap: 2px;
        padding: 4px;
        border-radius: 8px;
        background: #e3e8ff;
        position: relative;
      }
      .mini.active { outline: 3px solid #3a66ff; }
      .mini.won-0 { background: #ffd9d9; }
      .mini.won-1 { background: #d9f0ff; }
      .mini.won-draw { background: #e0e0e0; }
      .cell {
        aspect-ratio: 1;
        border: none;
        border-radius: 4px;
        padding: 0;
        font-size: 1.1rem;
        font-weight: 700;
      }
      .classic .cell { font-size: 2.5rem; }
      .hidden { display: none; }
    </style>
  </head>
  <body>
    <main>
      <h1>SuperXO</h1>
      <section id="lobby">
        <button id="create">Create room</button>
        <p>or</p>
        <input id="code" placeholder="Room code" autocomplete="off" />
        <button id="join">Join</button>
      </section>
      <p id="room"></p>
      <p id="status"></p>
      <div id="board"></div>
      <button id="rematch" class="hidden">Rematch</button>
    </main>
    <script>
      const MARKS = ["X", "O"];
      const scheme = location.protocol === "https:" ? "wss" : "ws";
      const socket = new WebSocket(`${scheme}://${location.host}/ws`);
      let slot = null;
      let game = null;

      const $ = (id) => document.getElementById(id);
      const send = (msg) => socket.send(JSON.stringify(msg));
      const status = (text) => ($("status").textContent = text);
      const mark = (v) => (v === 0 || v === 1 ? MARKS[v] : "");

      $("create").onclick = () => send({ type: "create" });
      $("join").onclick = () => send({ type: "join", code: $("code").value });
      $("rematch").onclick = () => send({ type: "rematch" });

      function winnerOf(g) {
        return "cells" in g ? g.gameWinner : g.winner;
      }

      function cellButton(value, onClick) {
        const btn = document.createElement("button");
        btn.className = "cell";
        btn.textContent = mark(value);
        btn.disabled = value !== null;
        btn.onclick = onClick;
        return btn;
      }

      function render() {
        const root = $("board");
        root.innerHTML = "";
        if (!game) return;
        if ("cells" in game) {
          const meta = document.createElement("div");
          meta.className = "meta";
          game.cells.forEach((cells, b) => {
            const mini = document.createElement("div");
            mini.className = "mini";
            const result = game.miniWinner[b];
            if (result !== null) mini.classList.add(`won-${result}`);
            if (result === null && (game.activeBoard === null || game.activeBoard === b)) {
              mini.classList.add("active");
            }
            cells.forEach((value, c) => {
              mini.appendChild(
                cellButton(value, () => send({ type: "move", boardIndex: b, cellIndex: c }))
              );
            });
            meta.appendChild(mini);
          });
          root.appendChild(meta);
        } else {
          const mini = document.createElement("div");
          mini.className = "mini classic";
          game.board.forEach((value, i) => {
            mini.appendChild(cellButton(value, () => send({ type: "move", index: i })));
          });
          root.appendChild(mini);
        }
        const winner = winnerOf(game);
        $("rematch").classList.toggle("hidden", winner === null);
        if (winner === "draw") status("Draw!");
        else if (winner !== null) status(winner === slot ? "You win!" : "You lose.");
        else status(game.turn === slot ? "Your turn" : "Opponent's turn");
      }

      socket.onmessage = (event) => {
        const msg = JSON.parse(event.data);
        switch (msg.type) {
          case "created":
            slot = 0;
            $("lobby").classList.add("hidden");
            $("room").textContent = `Room ${msg.code} - share this code`;
            status("Waiting for an opponent...");
            break;
          case "joined":
            slot = msg.slotIndex;
            $("lobby").classList.add("hidden");
            $("room").textContent = `Room ${msg.code} - you are ${MARKS[slot]}`;
            break;
          case "error":
            status(msg.msg);
            break;
          case "start":
          case "update":
            game = msg.game;
            render();
            break;
          case "rematch_waiting":
            status("Rematch requested...");
            break;
          case "opponent_left":
            status("Opponent disconnected. Waiting for them to return...");
            break;
        }
      };
      socket.onclose = () => status("Connection lost.");
    </script>
  </body>
</html>
"""


app = create_app()
