"""Errors raised by the chat session client."""


class InitializationError(Exception):
    """The latest thread could not be loaded or created."""


class ThreadLoadError(Exception):
    """A thread or its messages could not be loaded; current state is unchanged."""


class ThreadCreateError(Exception):
    """A new thread could not be created."""


class MicrophoneError(Exception):
    """The microphone could not be opened."""
