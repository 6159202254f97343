import enum

import pydantic

class MacroName(str, enum.Enum):
    Z_PROBE = "z-probe"
    XYZ_PROBE = "xyz-probe"
    INITIAL_TOOL = "initial-tool"
    NEW_TOOL = "new-tool"

class MacroDefinition(pydantic.BaseModel):
    name: str
    id: str
    commands: list[str] = pydantic.Field(default_factory=list, description="G-code lines streamed when the macro runs")

class MacroTable(pydantic.BaseModel):
    entries: dict[MacroName, str] = pydantic.Field(default_factory=dict)

    model_config = {"frozen": True}

    def get(self, name: MacroName) -> str | None:
        """
        Look up the controller-side identifier of a logical macro.

        Args:
            name: Logical macro name

        Returns:
            Macro identifier, or None if the macro is not configured
        """
        return self.entries.get(name)
