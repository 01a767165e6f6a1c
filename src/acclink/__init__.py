"""acclink -- Link third-party accounts to plugin configurations.

This package drives an interactive, multi-step account-linking flow
(username, password, one-time code, issued credentials) over a named-event
channel to a linking agent running on the host server, and saves the
credential bundle the agent returns into the plugin's configuration record.

Typical workflow::

    acclink link homebridge-nest-cam --alias Nest-cam   # interactive login
    acclink status homebridge-nest-cam                  # check the result

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    channel: Named-event transports to the linking agent.
    linking: Step rules, state machine, and session controller.
    store: Plugin configuration persistence.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
