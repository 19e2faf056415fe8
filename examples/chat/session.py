"""Run a chat client and server over a socket pair.

Usage: python session.py
"""

import socket
import threading
from pathlib import Path

from rich.console import Console

from wirepack.generator import compile_schema, parse
from wirepack.proto import SerializationError

SCHEMA = compile_schema(parse((Path(__file__).parent / "chat.wire").read_text(encoding="utf-8")))

Join, Say, Ping = SCHEMA["Join"], SCHEMA["Say"], SCHEMA["Ping"]
Welcome, Message, Pong = SCHEMA["Welcome"], SCHEMA["Message"], SCHEMA["Pong"]
User, Text, Emote, Leave = SCHEMA["User"], SCHEMA["Text"], SCHEMA["Emote"], SCHEMA["Leave"]

console = Console()


def serve(sock: socket.socket) -> None:
    with sock, sock.makefile("rb") as source, sock.makefile("wb") as sink:
        user = None
        while True:
            try:
                packet = SCHEMA.decode("Serverbound", source)
            except SerializationError as e:
                # Packets are unframed, so the rest of the stream cannot be trusted
                console.print(f"[red]server: closing connection: {e}[/red]")
                return

            if isinstance(packet, Join):
                user = packet.user
                reply = Welcome(motd="hello", online=[user])
            elif isinstance(packet, Ping):
                reply = Pong(token=packet.token)
            else:
                reply = Message(sender=user.name if user else "?", body=packet.body)

            SCHEMA.encode(reply, sink)
            sink.flush()
            if isinstance(packet, Say) and isinstance(packet.body, Leave):
                return


def main() -> None:
    client, server = socket.socketpair()
    thread = threading.Thread(target=serve, args=(server,), daemon=True)
    thread.start()

    source = client.makefile("rb")
    sink = client.makefile("wb")
    outgoing = [
        Join(user=User(name="ada", color=0xFF8800)),
        Say(body=Text(text="hi all")),
        Ping(token=2**40),
        Say(body=Emote(action="waves")),
        Say(body=Leave()),
    ]
    for packet in outgoing:
        console.print(f"[cyan]client ->[/cyan] {packet!r} [dim]{packet.pack().hex()}[/dim]")
        packet.write(sink)
        sink.flush()
        console.print(f"[green]client <-[/green] {SCHEMA.decode('Clientbound', source)!r}")

    thread.join()


if __name__ == "__main__":
    main()
