import asyncio, typer
import grpc
from grpc import aio
from ..proto import chat_pb2, chat_pb2_grpc

app = typer.Typer(help="Simple gRPC group chat client")


async def _signup(host: str, port: int, request: chat_pb2.SignupRequest):
    async with aio.insecure_channel(f"{host}:{port}") as chan:
        return await chat_pb2_grpc.CoordinatorStub(chan).Signup(request)


async def _login(host: str, port: int, request: chat_pb2.LoginRequest):
    async with aio.insecure_channel(f"{host}:{port}") as chan:
        return await chat_pb2_grpc.CoordinatorStub(chan).Login(request)


def _print_event(msg: chat_pb2.ServerEvent, state: dict):
    """Render one incoming server event on the console.

    Args:
        msg (chat_pb2.ServerEvent): Event from the server
        state (dict): Client state; ``group`` is the current posting target
    """
    kind = msg.WhichOneof("kind")
    if kind == "group_messages":
        data = msg.group_messages
        if data.group != state["group"] or not data.chat_history:
            return
        last = data.chat_history[-1]
        if last.type == "message":
            print(f"[{last.group}] {last.username}: {last.message}")
        else:
            print(f"[{last.group}] * {last.username} {last.event}")
    elif kind == "auth_status":
        if msg.auth_status.is_authenticated:
            print(f"[auth] Signed in as {msg.auth_status.username}")
        else:
            print("[auth] Guest (read-only)")
    elif kind == "all_groups":
        print(f"[groups] {', '.join(msg.all_groups.groups)}")
    elif kind == "user_groups":
        print(f"[joined] {', '.join(msg.user_groups.groups)}")
    elif kind == "user_count":
        print(f"[online] {msg.user_count.count}")
    elif kind == "user_typing":
        verb = "is typing..." if msg.user_typing.is_typing else "stopped typing"
        print(f"[{msg.user_typing.group}] {msg.user_typing.username} {verb}")
    elif kind == "error":
        print(f"[error] {msg.error.message}")
    elif kind == "receive_messages":
        # legacy unified feed; per-group events already cover it
        pass
    else:
        print(f"[IN] {msg}")


async def _run(token: str, host: str, port: int):
    """Main client loop: open the stream, authenticate and relay commands.

    Args:
        token (str): Credential token; empty for guest access
        host (str): Chat server hostname
        port (int): Chat server port
    """
    state = {"group": "General"}

    async def outgoing():
        """Generate outgoing events from user input.

        Implements command processing for:
        - /join, /leave, /create: Group membership
        - /use: Switch the group new lines are posted to
        - /typing: Send a typing indicator
        - /help: Show available commands
        Any other line is posted to the current group.

        Yields:
            chat_pb2.ClientEvent: Inbound events for the server
        """
        yield chat_pb2.ClientEvent(authenticate=chat_pb2.Authenticate(token=token))

        loop = asyncio.get_running_loop()
        while True:
            try:
                line = await loop.run_in_executor(None, input, "")
            except EOFError:
                return
            line = line.strip()
            if not line:
                continue

            cmd, _, arg = line.partition(" ")
            arg = arg.strip()
            if cmd == "/join" and arg:
                state["group"] = arg
                yield chat_pb2.ClientEvent(join_group=chat_pb2.GroupRef(group_name=arg))
            elif cmd == "/leave" and arg:
                if state["group"] == arg:
                    state["group"] = "General"
                yield chat_pb2.ClientEvent(leave_group=chat_pb2.GroupRef(group_name=arg))
            elif cmd == "/create" and arg:
                state["group"] = arg
                yield chat_pb2.ClientEvent(create_group=chat_pb2.GroupRef(group_name=arg))
            elif cmd == "/use" and arg:
                state["group"] = arg
                print(f"[group] Posting to {arg}")
            elif cmd == "/typing":
                yield chat_pb2.ClientEvent(typing_start=chat_pb2.Typing(group=state["group"]))
            elif cmd in {"/help", "help"}:
                print("Commands:\n"
                      "  /join <group>\n"
                      "  /leave <group>\n"
                      "  /create <group>\n"
                      "  /use <group>\n"
                      "  /typing\n"
                      "  /help\n"
                      "Anything else is posted to the current group.")
            elif line.startswith("/"):
                print('Type "/help" for commands.')
            else:
                yield chat_pb2.ClientEvent(post_message=chat_pb2.PostMessage(message=line, group=state["group"]))
                yield chat_pb2.ClientEvent(typing_stop=chat_pb2.Typing(group=state["group"]))

    chan = aio.insecure_channel(f"{host}:{port}")
    stub = chat_pb2_grpc.CoordinatorStub(chan)
    call = stub.Connect(outgoing())
    try:
        async for msg in call:
            _print_event(msg, state)
    except grpc.aio.AioRpcError as e:
        print(f"[error] Stream closed: {e.details()}")
    finally:
        await chan.close()


@app.command("signup")
def signup_cmd(username: str, email: str, password: str = typer.Option(..., prompt=True, hide_input=True),
               host: str = "127.0.0.1", port: int = 50051):
    """Register a new account and print its token."""
    try:
        resp = asyncio.run(_signup(host, port, chat_pb2.SignupRequest(username=username, email=email, password=password)))
    except grpc.aio.AioRpcError as e:
        print(f"Signup failed: {e.details()}")
        raise typer.Exit(1)
    print(f"Registered as {resp.username} ({resp.email})")
    print(resp.token)


@app.command("login")
def login_cmd(email_or_username: str, password: str = typer.Option(..., prompt=True, hide_input=True),
              host: str = "127.0.0.1", port: int = 50051):
    """Log in and print a fresh token."""
    try:
        resp = asyncio.run(_login(host, port, chat_pb2.LoginRequest(email_or_username=email_or_username, password=password)))
    except grpc.aio.AioRpcError as e:
        print(f"Login failed: {e.details()}")
        raise typer.Exit(1)
    print(f"Logged in as {resp.username}")
    print(resp.token)


@app.command("run")
def run_cmd(
    token: str = typer.Option("", envvar="ROOMCHAT_TOKEN", help="Token from signup/login; empty for guest"),
    host: str = "127.0.0.1",
    port: int = 50051,
):
    """
    Run the chat client.

    Args:
        token: Credential token. Without one the client joins as a read-only guest
        host: Server hostname
        port: Server port
    """
    asyncio.run(_run(token, host, port))


if __name__ == "__main__":
    app()
