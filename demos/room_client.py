#!/usr/bin/env python3
"""
Terminal client for the chess room server.

Create or join a room, then play moves by typing them (SAN or UCI).
"""

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional

import chess
import websockets
from rich.console import Console

console = Console()

HELP = (
    "Commands: create | join <room id> | move <san|uci> | reset | ping | "
    "name <username> | board | help | quit"
)


class RoomClient:
    """
    Interactive client for one room session.

    :param server_url: Base URL of the server (http, https, ws or wss)
    :type server_url: str
    :param username: Display name announced after connecting
    :type username: Optional[str]
    """

    def __init__(self, server_url: str, username: Optional[str] = None) -> None:
        url = server_url.rstrip("/")
        if url.startswith("http://"):
            url = "ws://" + url[len("http://"):]
        elif url.startswith("https://"):
            url = "wss://" + url[len("https://"):]
        if not url.endswith("/ws"):
            url += "/ws"
        self.server_url = url
        self.username = username
        self.room_id: Optional[str] = None
        self.side: Optional[str] = None
        self.fen = chess.STARTING_FEN
        self.current_turn = "first"
        self.move_count = 0
        self.game_over: Optional[Dict[str, Any]] = None
        self.next_ack = 1
        self.pending_acks: Dict[int, str] = {}

    def build_message(self, event: str, data: Any = None, expect_ack: bool = False) -> Dict[str, Any]:
        """
        Build an outbound frame, registering an ack id if a reply is expected.

        :param event: Event name
        :type event: str
        :param data: Event payload
        :type data: Any
        :param expect_ack: Whether the server should acknowledge the event
        :type expect_ack: bool
        :return: Frame ready to be JSON encoded
        :rtype: Dict[str, Any]
        """
        message: Dict[str, Any] = {"event": event, "data": data}
        if expect_ack:
            message["ack"] = self.next_ack
            self.pending_acks[self.next_ack] = event
            self.next_ack += 1
        return message

    def parse_command(self, line: str) -> Optional[Dict[str, Any]]:
        """
        Turn a typed command into a frame.

        :param line: Raw command line
        :type line: str
        :return: Frame to send, or None to quit
        :rtype: Optional[Dict[str, Any]]
        :raises ValueError: If the command is unknown or incomplete
        """
        parts = line.strip().split(maxsplit=1)
        if not parts:
            raise ValueError(HELP)
        command = parts[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else ""

        if command in ("quit", "exit"):
            return None
        if command == "create":
            return self.build_message("createRoom", expect_ack=True)
        if command == "join":
            if not argument:
                raise ValueError("Usage: join <room id>")
            return self.build_message("joinRoom", {"roomId": argument}, expect_ack=True)
        if command == "ping":
            return self.build_message("ping", expect_ack=True)
        if command == "name":
            if not argument:
                raise ValueError("Usage: name <username>")
            self.username = argument
            return self.build_message("username", argument)
        if command in ("move", "reset") and self.room_id is None:
            raise ValueError("Create or join a room first")
        if command == "move":
            if not argument:
                raise ValueError("Usage: move <san|uci>")
            return self.build_message("move", {"move": argument, "room": self.room_id})
        if command == "reset":
            return self.build_message("gameReset", {"room": self.room_id})
        raise ValueError(HELP)

    def apply_server_message(self, message: Dict[str, Any]) -> List[str]:
        """
        Update local state from a server frame.

        :param message: Decoded server frame
        :type message: Dict[str, Any]
        :return: Rich markup lines describing what happened
        :rtype: List[str]
        """
        event = message.get("event")
        data = message.get("data")

        if event == "ack":
            return self._apply_ack(message.get("ack"), data)
        if event == "gameUpdate" and isinstance(data, dict):
            self.fen = data.get("fen", self.fen)
            self.current_turn = data.get("currentTurn", self.current_turn)
            self.move_count = data.get("moveCount", self.move_count)
            self.game_over = data.get("gameOver")
            lines = [f"[cyan]Move {self.move_count}, {self.current_turn} to play[/cyan]"]
            if self.game_over:
                lines.append(f"[bold green]{self.game_over.get('message')}[/bold green]")
            return lines
        if event == "move":
            return [f"[yellow]Opponent played:[/yellow] {data}"]
        if event == "opponentJoined" and isinstance(data, dict):
            names = ", ".join(player.get("username", "?") for player in data.get("players", []))
            return [f"[green]Opponent joined.[/green] Players: {names}"]
        if event == "playerDisconnected" and isinstance(data, dict):
            player = data.get("player") or {}
            return [f"[red]{player.get('username', 'Opponent')} disconnected[/red]"]
        if event == "gameReset":
            return ["[magenta]Game reset[/magenta]"]
        if event == "error" and isinstance(data, dict):
            return [f"[red]Error:[/red] {data.get('message')}"]
        return [f"[dim]{event}: {data}[/dim]"]

    def _apply_ack(self, ack: Optional[int], data: Any) -> List[str]:
        event = self.pending_acks.pop(ack, None) if ack is not None else None
        if isinstance(data, dict) and data.get("error"):
            return [f"[red]{event or 'request'} failed:[/red] {data.get('message')}"]
        if event == "createRoom":
            self.room_id = data
            self.side = "first"
            return [f"[green]Room created:[/green] {data} (share this id, you play white)"]
        if event == "joinRoom" and isinstance(data, dict):
            self.room_id = data.get("roomId")
            self.side = "second"
            for player in data.get("players", []):
                if player.get("username") == self.username:
                    self.side = player.get("side", self.side)
            return [f"[green]Joined room[/green] {self.room_id} as {self.side}"]
        if event == "ping":
            return [f"[dim]{data}[/dim]"]
        return [f"[dim]ack {ack}: {data}[/dim]"]

    def render_board(self) -> str:
        """
        Render the current position, from the local player's point of view.

        :return: Board drawn with unicode pieces
        :rtype: str
        """
        board = chess.Board(self.fen)
        return board.unicode(borders=True, invert_color=False, orientation=self.side != "second")

    async def _read(self, websocket: Any) -> None:
        async for raw in websocket:
            message = json.loads(raw)
            for line in self.apply_server_message(message):
                console.print(line)
            if message.get("event") == "gameUpdate":
                console.print(self.render_board())

    async def run(self) -> None:
        """Connect and run the interactive loop until the user quits."""
        console.print(f"[cyan]Connecting to[/cyan] {self.server_url}")
        async with websockets.connect(self.server_url) as websocket:
            if self.username:
                await websocket.send(json.dumps(self.build_message("username", self.username)))
            console.print(HELP)
            reader = asyncio.create_task(self._read(websocket))
            try:
                while True:
                    line = await asyncio.to_thread(console.input, "> ")
                    if line.strip().lower() == "board":
                        console.print(self.render_board())
                        continue
                    if line.strip().lower() == "help":
                        console.print(HELP)
                        continue
                    try:
                        message = self.parse_command(line)
                    except ValueError as e:
                        console.print(f"[red]{e}[/red]")
                        continue
                    if message is None:
                        break
                    await websocket.send(json.dumps(message))
            finally:
                reader.cancel()


def main() -> None:
    parser = argparse.ArgumentParser(description="Chess Rooms terminal client")
    parser.add_argument("--server", type=str, default="http://localhost:8080",
                        help="Server URL (default: http://localhost:8080)")
    parser.add_argument("--username", type=str, default=None, help="Display name")
    args = parser.parse_args()

    try:
        asyncio.run(RoomClient(args.server, args.username).run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Bye[/yellow]")


if __name__ == "__main__":
    main()
