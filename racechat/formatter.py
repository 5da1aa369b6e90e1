"""Renders retrieved race records as a context block for the generation model."""

from racechat.planner import QueryResult

HEADER = "📊 RACING DATA FROM DATABASE:\n\n"
FOOTER = "\n=== END OF DATABASE DATA ===\n\n"
GROUNDING_INSTRUCTION = (
    "Please use this data to answer the user's question accurately. "
    "Reference specific values when relevant.\n"
)

# Internal id and ingestion stamp carry no race information
HIDDEN_FIELDS = frozenset(["_id", "uploadedAt"])


def render_value(value) -> str:
    """Field value as the model should read it: JSON-style literals, integral floats as ints."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_context(query_result: QueryResult) -> str:
    if not query_result.has_data:
        return ""

    parts = [HEADER]
    for result in query_result.results.values():
        parts.append(f"\n=== {result.collection_name} ({result.count} records) ===\n")

        for index, record in enumerate(result.data, start=1):
            parts.append(f"\nRecord {index}:\n")
            for name, value in record.items():
                if name in HIDDEN_FIELDS:
                    continue
                parts.append(f"  {name}: {render_value(value)}\n")

        parts.append("\n")

    parts.append(FOOTER)
    parts.append(GROUNDING_INSTRUCTION)
    return "".join(parts)
