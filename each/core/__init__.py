"""Core components: replay buffer, format matching, actions and scheduling."""
