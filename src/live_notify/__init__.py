"""Live Notify: relays stream started/ended events to chat-server channels."""
