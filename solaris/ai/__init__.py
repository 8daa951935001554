"""Model-backed collaborators: the evidence analyzer and the chat agent."""
