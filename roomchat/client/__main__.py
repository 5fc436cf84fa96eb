"""
Entry point for the chat client.
"""
from .cli import app


def main():
    """Launch the chat client application.

    Command line usage:
        python -m roomchat.client signup <username> <email>
        python -m roomchat.client login <email-or-username>
        python -m roomchat.client run --token <token>
    """
    app()


if __name__ == "__main__":
    main()
