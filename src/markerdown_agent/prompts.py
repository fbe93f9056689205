"""Prompt scaffolding sent to the Claude CLI.

Chat prompts are sent as ``INSTRUCTION_PREFIX [+ file context] + RESPONSE_MARKER
+ user text``. The CLI stores the whole prompt as the user turn in its session
log, so the reader drops everything up to the marker before display.
"""

RESPONSE_MARKER = "<<<MARKERDOWN-USER-MESSAGE>>>"

INSTRUCTION_PREFIX = """You are a helpful assistant that answers questions about the files in this directory.
When you need information, use your tools to list directories and read files.
Prefer reading .md files over .pdf files when both exist for the same topic.
If "Agent Memory.md" exists in the current directory, read it first to understand the user's context and preferences.
Be concise but thorough in your answers. Do not generate files - only answer verbally.
"""


def build_chat_prompt(text: str, current_file: str | None = None) -> str:
    """Compose the full prompt for one chat turn."""
    parts = [INSTRUCTION_PREFIX]
    if current_file:
        parts.append(f'The user currently has "{current_file}" open in the viewer.\n')
    parts.append(f"{RESPONSE_MARKER}\n")
    parts.append(text)
    return "\n".join(parts)


def strip_prompt_scaffolding(stored: str) -> str:
    """Return what the user actually typed from a stored user turn.

    Text without the marker was not produced by this application and is
    returned verbatim.
    """
    index = stored.find(RESPONSE_MARKER)
    if index == -1:
        return stored
    return stored[index + len(RESPONSE_MARKER):].lstrip()


def build_summarize_prompt(source_path: str, output_path: str, instructions: str) -> str:
    return (
        'If "Agent Memory.md" exists in the current directory, read it first to '
        "understand the user's context and preferences.\n"
        f'Read the file at "{source_path}". Then create a markdown file at '
        f'"{output_path}" with the following:\n\n{instructions}'
    )
