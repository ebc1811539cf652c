"""Built-in prompts used when no user template applies."""

from __future__ import annotations

from typing import Any, Mapping

from codeintel.models.prompts import PromptTemplate, PromptType

DEFAULT_TEMPLATE_NAME = "<Default>"

DEFAULT_INSTRUCT_PROMPT = """\
## General Instructions:
Complete the code beginning at the <<<cursor>>> position.
A selection may be present, indicated by <<<selection_start>>> and <<<selection_end>>> markers.
A completion always starts at the <<<cursor>>> marker, but it may span more than one line.

### Example:
**Code:**
```
def greet(names):
    for name in names:
        pri<<<cursor>>>
```
**Completion:**
```
        print(f"Hello, {name}!")
```

## Here is a list of the most recent edits made by the user:
{{#recentEdits}}
{{.}}

{{/recentEdits}}
## Important details:
- Do not repeat the context in your answer.
- Include the current line until the <<<cursor>>> marker in your answer.
- Focus on relevant variables and methods from the context provided.
- If the context before the current line ends with a comment, implement what the comment intends to do.
- Use the provided last edits by the user to guess what might be an appropriate completion here.
- Output only the completion snippet (no extra explanations, no markdown, not the whole program again).
- If the code can be completed logically in 1-5 lines, do so; otherwise, finalize the snippet where it makes sense.
- It is important to create short completions.

## Now do this for this code:
**Code:**
```
{{code}}
```
**Completion:**
"""

DEFAULT_CHAT_SYSTEM_PROMPT = """\
You're an expert programmer who helps the user with tasks regarding their code and/or general programming tasks.
"""

DEFAULT_CAPTION_PROMPT = """\
Create a short caption, about 3-6 words, for the content below:
===
{{content}}
===

Important instructions:
- If in doubt, the question or instruction in the first paragraph is more important than latter (answer) part.
- Respond with only the caption.
- No explanations, alternatives, etc.
- No formatting, just the words.

Caption:
"""

_DEFAULT_PROMPTS: Mapping[PromptType, str] = {
    PromptType.INSTRUCT: DEFAULT_INSTRUCT_PROMPT,
    PromptType.CHAT: DEFAULT_CHAT_SYSTEM_PROMPT,
}

# Sample variables shown in the live preview of completion templates.
COMPLETION_DEMO_DATA: Mapping[str, Any] = {
    "recentEdits": [
        "```\ntemplates.append(create_placeholder())\n```",
        "```\ntemplate = PromptTemplate(name=\"<None>\", enabled=True)\nreturn template\n```",
        "```\ntemplate.enabled = True\n```",
    ],
    "code": (
        "numbers = [1, 2, 3, 4, 5]\n"
        "even_sum = sum(\n"
        "    n for n in numbers\n"
        "    <<<cursor>>>\n"
    ),
}


def default_prompt(prompt_type: PromptType) -> str:
    """Return the built-in prompt text for ``prompt_type``."""

    return _DEFAULT_PROMPTS[prompt_type]


def default_template(prompt_type: PromptType) -> PromptTemplate:
    """Return a synthetic template wrapping the built-in prompt for ``prompt_type``."""

    return PromptTemplate(
        name=DEFAULT_TEMPLATE_NAME,
        type=prompt_type,
        prompt=default_prompt(prompt_type),
        enabled=True,
    )


__all__ = [
    "COMPLETION_DEMO_DATA",
    "DEFAULT_CAPTION_PROMPT",
    "DEFAULT_CHAT_SYSTEM_PROMPT",
    "DEFAULT_INSTRUCT_PROMPT",
    "DEFAULT_TEMPLATE_NAME",
    "default_prompt",
    "default_template",
]
