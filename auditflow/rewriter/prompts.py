"""
Rewriter Prompts

Prompt builders for the rewrite, the stricter re-prompt after a parse
failure, the keyword repair pass and the E-E-A-T assessment.
"""

from typing import List, Optional

REWRITE_SYSTEM = (
    "You are an expert SEO content writer. You always answer with a single JSON "
    "object and nothing else."
)

OUTPUT_CONTRACT = """Return ONLY a JSON object with exactly these fields:
{
  "rewritten_content": string,        // the full rewritten content
  "keywords_incorporated": [string]   // target keywords you used verbatim
}"""

EEAT_GUIDANCE = """E-E-A-T GUIDANCE:
- Experience: Include first-hand experiences or perspectives if present in the original
- Expertise: Maintain technical terms, references to research, or industry-specific knowledge
- Authoritativeness: Preserve citations, references to trusted sources, or industry standards
- Trustworthiness: Keep factual accuracy, balanced viewpoints, and transparent information"""


def build_rewrite_prompt(
    original_content: str,
    target_keywords: List[str],
    preserve_eeat: bool,
    tone_style: str,
    content_type: str,
    max_length: Optional[int] = None,
) -> str:
    eeat_instruction = (
        "Maintain or enhance any signals of expertise, authoritativeness, and trustworthiness"
        if preserve_eeat
        else "Focus primarily on readability and keyword optimization"
    )
    parts = [
        "Rewrite the following content to optimize it for search engines.",
        f"ORIGINAL CONTENT:\n{original_content}",
        "TARGET KEYWORDS (in order of priority):\n" + ", ".join(target_keywords),
        f"CONTENT TYPE: {content_type}",
        f"TONE STYLE: {tone_style}",
    ]
    if max_length:
        parts.append(f"MAXIMUM LENGTH: {max_length} characters")
    parts.append(
        "INSTRUCTIONS:\n"
        "1. Include every target keyword verbatim at least once, naturally\n"
        f"2. {eeat_instruction}\n"
        "3. Improve readability and flow\n"
        "4. Maintain the overall message and key points\n"
        "5. Use appropriate headings, bullet points, and paragraph breaks"
    )
    if preserve_eeat:
        parts.append(EEAT_GUIDANCE)
    parts.append(OUTPUT_CONTRACT)
    return "\n\n".join(parts)


def build_strict_reprompt(base_prompt: str, error: str) -> str:
    """Re-prompt after output that failed to parse."""
    return (
        f"{base_prompt}\n\n"
        f"Your previous answer could not be parsed ({error}). "
        "Answer with the JSON object only: no prose, no Markdown, no extra fields."
    )


def build_repair_prompt(rewritten_content: str, missing: List[str]) -> str:
    """Ask for a revision that adds keywords the rewrite left out."""
    return (
        "The following content is missing these required keywords: "
        + ", ".join(f'"{keyword}"' for keyword in missing)
        + ".\n\nRevise it so each one appears verbatim at least once, changing as little "
        "as possible.\n\n"
        f"CONTENT:\n{rewritten_content}\n\n{OUTPUT_CONTRACT}"
    )


def build_eeat_prompt(content: str) -> str:
    return (
        "Score the following content from 0 to 100 on each Google E-E-A-T signal:\n"
        "- experience: evidence of first-hand experience with the topic\n"
        "- expertise: demonstration of knowledge and domain skill\n"
        "- authoritativeness: credentials, references and recognized authority\n"
        "- trustworthiness: accuracy, transparency and credibility\n"
        "- overall: weighted average\n\n"
        f"CONTENT:\n{content}\n\n"
        "Return ONLY a JSON object with the numeric fields experience, expertise, "
        "authoritativeness, trustworthiness and overall."
    )
