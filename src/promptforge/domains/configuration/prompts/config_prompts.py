"""MCP Prompts: starting points for configuration authoring."""

from __future__ import annotations

from fastmcp import FastMCP


def register_config_prompts(mcp: FastMCP) -> None:
    """Register configuration authoring MCP prompts."""

    @mcp.prompt()
    def design_configuration_prompt(goal: str, audience: str = "general users") -> str:
        """Prompt template for describing a new form + prompt pipeline."""
        return f"""I want a configuration for: {goal}

The people filling in the form are {audience}. Please:

1. Decide which fields the form needs and give each a clear default
2. Split the work into a short chain of prompt blocks, each using the
   previous block's output
3. Use several cards only if the task really has separate stages
4. Add a global prompt block if all cards share one finishing step

Then call generate_config with a one-paragraph summary of the above."""

    @mcp.prompt()
    def revise_configuration_prompt(change: str) -> str:
        """Prompt template for refining the last generated configuration."""
        return f"""Please revise the configuration we just generated: {change}

Keep every field and prompt block that the change does not touch, and
keep the placeholder references between blocks consistent. Call
edit_config with the previous configuration as original_content."""
