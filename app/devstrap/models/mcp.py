"""MCP server descriptor model.

A descriptor is the command line an editor launches to reach one MCP
server. Descriptors ship as JSON files named after the server and may use
the ``__HOME__`` placeholder for paths under the user's home directory.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

HOME_PLACEHOLDER = "__HOME__"


def substitute_home(value: str, home: str) -> str:
    """Replace every placeholder occurrence with the home directory.

    ``str.replace`` scans the input once, so a home path that itself
    contains the placeholder text is not expanded again.
    """
    return value.replace(HOME_PLACEHOLDER, home)


class MCPServerDescriptor(BaseModel):
    """Launch description of one MCP server.

    Attributes:
        name: Server name, used as the key in the merged document.
        command: Executable to launch (e.g. ``npx``, ``uvx``).
        args: Command arguments.
        env: Extra environment variables for the server process.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    command: Annotated[str, Field(min_length=1)]
    args: tuple[str, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)

    def with_home(self, home: str) -> "MCPServerDescriptor":
        """Return a copy with the home placeholder substituted in every field."""
        return MCPServerDescriptor(
            name=self.name,
            command=substitute_home(self.command, home),
            args=tuple(substitute_home(arg, home) for arg in self.args),
            env={key: substitute_home(value, home) for key, value in self.env.items()},
        )

    def to_entry(self) -> dict[str, Any]:
        """Render the ``mcpServers`` entry for this server.

        The ``env`` key is omitted when empty.
        """
        entry: dict[str, Any] = {"command": self.command, "args": list(self.args)}
        if self.env:
            entry["env"] = dict(self.env)
        return entry
