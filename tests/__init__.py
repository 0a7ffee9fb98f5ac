"""
Test suite for the Discord Connect Receiver.

Unit tests are organized by area under ``tests/unit``:
- ``test_core``: named pipe, respawn policy, supervisor, pipelines, transport
- ``test_audio``: codec helpers, packet buffer, audio source
- ``test_config``: configuration loading
- ``test_bots``: command and event handlers
"""
