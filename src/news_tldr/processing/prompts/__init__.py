"""Prompt templates."""

__all__ = ["digest_prompt"]
