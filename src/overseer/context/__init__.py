"""Request context assembly for Overseer."""

from overseer.context.assembly import RequestContextBuilder, select_agent_items

__all__ = ["RequestContextBuilder", "select_agent_items"]
