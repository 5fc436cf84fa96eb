import asyncio
from typing import Optional

import typer
from grpc import aio

from .credentials import CredentialService
from .engine import CoordinationEngine
from .transport import CoordinatorService
from ..proto import chat_pb2_grpc
from ..utils.config import ServerConfig
from ..utils.logger import setup_logger

logger = setup_logger('roomchat.server')

app = typer.Typer(help="Group chat coordination server")


def build_service(config: ServerConfig) -> CoordinatorService:
    """Wire the credential service, engine and transport for one process.

    All state is in memory and starts empty: only the General group exists.
    """
    credentials = CredentialService(
        secret=config.jwt_secret,
        token_ttl=config.token_ttl,
        bcrypt_rounds=config.bcrypt_rounds,
    )
    engine = CoordinationEngine.from_config(config, credentials)
    return CoordinatorService(engine, credentials)


async def serve(config: ServerConfig):
    """Start the chat server.

    Sets up and runs the gRPC server with the coordinator service.

    Args:
        config (ServerConfig): Listen address and server tunables

    Side Effects:
        - Starts gRPC server
        - Logs server startup progress
    """
    server = aio.server()
    chat_pb2_grpc.add_CoordinatorServicer_to_server(build_service(config), server)
    listen_addr = f"{config.host}:{config.port}"
    server.add_insecure_port(listen_addr)
    logger.info(f"Server starting, listening on {listen_addr}")
    await server.start()
    logger.info(f"Server is now running on {listen_addr}")
    await server.wait_for_termination()


@app.command("serve")
def serve_cmd(
    host: Optional[str] = typer.Option(None, help="Address to bind (default from ROOMCHAT_HOST)"),
    port: Optional[int] = typer.Option(None, help="Port to listen on (default from ROOMCHAT_PORT)"),
):
    """Run the chat server."""
    config = ServerConfig.from_env()
    if host:
        config.host = host
    if port:
        config.port = port
    asyncio.run(serve(config))


if __name__ == "__main__":
    app()
