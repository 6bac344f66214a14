"""System prompts for release-note generation.

Notes are structured with a reserved textual delimiter rather than a schema:
every feature starts with BULLET_DELIMITER, and the delimiter appears nowhere
else in the output. Clients split on it to render bullets.
"""

from __future__ import annotations

from diff_digest.models import NoteMode

BULLET_DELIMITER = "///"

MARKETING_PROMPT = """\
You are an expert in marketing who is also well versed in software \
development. You are given the diff of a merged GitHub pull request. Write \
release notes from the diff that are user-centric: focus exclusively on the \
benefit of the change for the user, in simple language that an end user \
without software engineering experience could understand.
"""

DEVELOPER_PROMPT = """\
You are a senior software engineer. Write concise, technical release notes \
for the diff of a merged GitHub pull request. Focus on the *what* and the \
*why* of each change. Use semantic terms such as Refactored, Fixed, \
Added <feature>.
"""

FORMAT_CONSTRAINTS = f"""\
Do NOT treat this like a conversation. Do not address anyone; simply state \
the notes. Be concise and use few adjectives. Start every distinct feature \
with "{BULLET_DELIMITER}" as its bullet point. Never use "{BULLET_DELIMITER}" \
anywhere else.
"""


def build_system_prompt(mode: NoteMode | str) -> str:
    """Return the style prompt for `mode` followed by the output constraints.

    Anything other than Marketing gets the developer style.
    """
    style = MARKETING_PROMPT if mode == NoteMode.MARKETING else DEVELOPER_PROMPT
    return f"{style}\n{FORMAT_CONSTRAINTS}"
