"""Vision-aware streaming chat gateway."""
