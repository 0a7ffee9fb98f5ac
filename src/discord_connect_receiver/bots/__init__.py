"""
Discord bot for the Connect Receiver.

- ``core``: the bot class and entry point
- ``commands``: device and voice command handlers
- ``handlers``: Discord event handlers
- ``utils``: embed helpers
"""
