"""Dashboard engine: message-driven state machine plus its Textual front end."""
