from loguru import logger

from pendant.schemas.macros import MacroDefinition
from pendant.schemas.macros import MacroName
from pendant.schemas.macros import MacroTable

def build_macro_table(definitions: list[MacroDefinition]) -> MacroTable:
    """
    Resolve configured macros into the fixed set of logical macro names.
    Names are matched case-insensitively; the first definition wins.

    Args:
        definitions: Macro definitions from configuration

    Returns:
        Read-only MacroTable mapping logical names to macro identifiers
    """
    by_name = {}
    for definition in definitions:
        by_name.setdefault(definition.name.strip().lower(), definition.id)

    entries: dict[MacroName, str] = {}
    for name in MacroName:
        macro_id = by_name.get(name.value)
        if macro_id is None:
            logger.warning(f"Macro '{name.value}' is not configured")
            continue
        entries[name] = macro_id

    return MacroTable(entries=entries)
