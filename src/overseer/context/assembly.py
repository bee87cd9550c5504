"""
Request context assembly.

A RequestContext records which rules, references and tools were used for
one request/response pair. It concatenates the session's sticky items
(always/manual) with the items selected for this request (agent).

Deduplication:
    Items are identified by (type, name, server_name). When an
    agent-selected item is already present, no entry is added; the
    existing entry keeps its position and include mode and takes the
    agent item's similarity score. Repeated agent items overwrite the
    score again (last write wins).
"""

from collections.abc import Iterable, Sequence

from overseer.schema import (
    ContextItem,
    IncludeMode,
    RequestContext,
    RequestContextItem,
    SessionContextItem,
)


def select_agent_items(
    candidates: Iterable[tuple[ContextItem, float]],
    top_k: int | None = None,
    min_score: float = 0.0,
) -> list[RequestContextItem]:
    """
    Turn scored candidates into agent-selected request items.

    Args:
        candidates: (item, similarity score) pairs
        top_k: Keep at most this many items (None = no limit)
        min_score: Drop candidates scoring below this

    Returns:
        Items with include_mode=agent, highest score first
    """
    ranked = sorted(
        (pair for pair in candidates if pair[1] >= min_score),
        key=lambda pair: pair[1],
        reverse=True,
    )
    if top_k is not None:
        ranked = ranked[: max(top_k, 0)]

    return [
        RequestContextItem(
            type=item.type,
            name=item.name,
            server_name=item.server_name,
            include_mode=IncludeMode.AGENT,
            similarity_score=score,
        )
        for item, score in ranked
    ]


class RequestContextBuilder:
    """
    Builds the RequestContext attached to a chat exchange.

    Usage:
        builder = RequestContextBuilder()
        context = builder.build(session.context_items, select_agent_items(scored, top_k=3))
    """

    def build(
        self,
        session_items: Sequence[SessionContextItem],
        agent_items: Sequence[RequestContextItem] = (),
    ) -> RequestContext:
        items: list[RequestContextItem] = []
        positions: dict[tuple[str, str, str | None], int] = {}

        for session_item in session_items:
            if session_item.key in positions:
                continue
            positions[session_item.key] = len(items)
            items.append(
                RequestContextItem(
                    type=session_item.type,
                    name=session_item.name,
                    server_name=session_item.server_name,
                    include_mode=session_item.include_mode,
                )
            )

        for agent_item in agent_items:
            index = positions.get(agent_item.key)
            if index is not None:
                items[index] = items[index].model_copy(
                    update={"similarity_score": agent_item.similarity_score}
                )
                continue
            positions[agent_item.key] = len(items)
            if agent_item.include_mode != IncludeMode.AGENT:
                agent_item = agent_item.model_copy(update={"include_mode": IncludeMode.AGENT})
            items.append(agent_item)

        return RequestContext(items=items)
