"""
LLM prompts for review, assignment grading and the in-editor assistant.

All of them ask for strict JSON; the parser copes when models ignore that.
"""

PYTHON_REVIEW_HINTS = """
Additional Python-specific guidance:
- Python integers are arbitrary-precision; do not warn about integer overflow.
- Do not mention division-by-zero unless division is actually present in the code.
- Prefer precise, code-referential issues with correct line numbers.
"""

REVIEW_JSON_SHAPE = """Return JSON exactly:
{
  "summary": "...",
  "issues": [
    { "line": 1, "message": "...", "severity": "warning", "suggestion": "..." }
  ]
}"""

ASSISTANT_SYSTEM_PROMPT = " ".join([
    "You are an in-editor AI coding assistant.",
    "You must return STRICT JSON with a concise summary and concrete code suggestions.",
    "When suggesting changes, provide clear diffs or exact replacement/insert blocks and include approximate line hints.",
    "Prefer minimal, safe edits. Avoid overwriting entire files unless asked.",
])

ASSISTANT_JSON_SHAPE = """Return JSON exactly in this shape:
{
  "summary": "<1-2 sentence answer>",
  "suggestions": [
    {
      "title": "<short title>",
      "rationale": "<why>",
      "apply": { "type": "replace" | "insert" | "patch", "range": { "startLine": <number>, "endLine": <number> }, "code": "<replacement or insertion>" }
    }
  ]
}"""

SELFTEST_PROMPT = "Say 'ok' and then your model id."


def build_review_prompt(code: str, language: str) -> str:
    """Prompt for the interactive review: up to 5 evidenced issues."""
    hints = PYTHON_REVIEW_HINTS if (language or "").lower() == "python" else ""

    prompt = f"""
You are a precise senior code reviewer. Analyze the following {language} code and return STRICT JSON only.
Rules:
- Provide a concise "summary" (1-2 sentences) focused on actual issues observed.
- Provide up to 5 high-signal "issues". Each issue must include: line (1-based), message, severity ("info" | "warning" | "error"), and optional suggestion.
- Only report issues that are directly evidenced by the code. Avoid boilerplate or hypothetical concerns.
- If line numbers are unclear, estimate reasonably and conservatively.
{hints}
{REVIEW_JSON_SHAPE}

Code:
---
{code}
---
"""
    return prompt


def build_submission_prompt(code: str, language: str) -> str:
    """Prompt for grading an assignment submission: up to 8 issues."""

    prompt = f"""
You are a senior code reviewer. Analyze the following {language} code and return STRICT JSON only.
Rules:
- Provide a concise "summary" (1-3 sentences).
- Provide up to 8 "issues". Each issue must include: line (1-based), message, severity ("info" | "warning" | "error"), and optional suggestion.
- Focus on correctness, clarity, and performance. If line numbers are unclear, estimate reasonably.

{REVIEW_JSON_SHAPE}

Code:
---
{code}
---
"""
    return prompt


def build_assistant_prompt(task: str, code: str = "", language: str = "") -> str:
    """Prompt for the in-editor assistant, with optional code context."""
    lang = (language or "").lower()
    parts = [
        ASSISTANT_SYSTEM_PROMPT,
        f"Task: {task}",
        f"\nContext ({lang or 'code'}):\n{code}" if code else "",
        f"\n{ASSISTANT_JSON_SHAPE}",
    ]
    return "\n\n".join(part for part in parts if part)

