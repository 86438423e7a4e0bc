"""
TUI (Terminal User Interface) Chat Client for PubChat

A minimal two-pane terminal chat:

- Message pane with wrapping and autoscroll
- Single line input pane with cursor editing
- PubNub publish/subscribe transport, or local echo without a network
- Async architecture for responsive UI

Usage:
    python -m clients.tui.client [path/to/config.json]
"""
