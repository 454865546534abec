"""
Prompt templates for each gateway request type.
"""

from typing import Optional

ASK_SYSTEM_PROMPT = """You are a knowledgeable assistant specializing in cultural heritage, history, anthropology, and cultural preservation.

Your expertise includes:
- World cultural practices and traditions
- Historical contexts and evolution of cultures
- Indigenous knowledge and wisdom
- Cultural artifacts and their significance
- Preservation techniques and best practices
- Ethical considerations in cultural documentation

Guidelines:
1. Provide accurate, respectful, and educational responses
2. Acknowledge cultural diversity and complexity
3. Emphasize the importance of cultural preservation
4. Respect indigenous knowledge and cultural ownership
5. Encourage proper permissions and ethical practices
6. Cite sources when possible
7. Admit uncertainty rather than speculate
8. Be sensitive to cultural appropriation concerns"""

SUGGESTIONS_SYSTEM_PROMPT = (
    "You are an expert in cultural heritage documentation and preservation. "
    "Provide helpful, specific, and respectful suggestions for improving cultural entries."
)

TAGS_SYSTEM_PROMPT = (
    "You are an expert in cultural heritage taxonomy. Generate relevant, specific tags "
    "for cultural entries. Return only the comma-separated list of tags, nothing else."
)

ANALYSIS_SYSTEM_PROMPT = (
    "You are a cultural anthropologist and heritage expert. Provide insightful, respectful, "
    "and comprehensive analysis of cultural significance. Be thorough but concise."
)

NOT_PROVIDED = "Not provided"


def build_ask_prompt(
    question: str,
    context: Optional[str] = None,
    reference_block: str = "",
    history: Optional[list[dict]] = None,
) -> str:
    """User prompt for a Q&A request."""
    sections = [f"Question: {question}"]
    if context:
        sections.append(f"Additional context: {context}")
    if reference_block:
        sections.append(reference_block)
    if history:
        turns = "\n".join(f"{m['role']}: {m['content']}" for m in history)
        sections.append(f"Previous conversation:\n{turns}")
    sections.append(
        "Please provide a comprehensive, educational response about this cultural heritage topic."
    )
    return "\n\n".join(sections)


def _location(entry: dict) -> str:
    return f"{entry.get('location_name') or NOT_PROVIDED}, {entry.get('location_country') or 'Unknown'}"


def build_suggestions_prompt(entry: dict) -> str:
    tags = ", ".join(entry.get("tags") or []) or "None"
    return f"""Analyze this cultural heritage entry and provide actionable suggestions for enhancement:

Title: {entry.get('title', '')}
Description: {entry.get('description', '')}
Category: {entry.get('category') or 'Other'}
Cultural Context: {entry.get('cultural_context') or NOT_PROVIDED}
Historical Period: {entry.get('historical_period') or NOT_PROVIDED}
Location: {_location(entry)}
Current Tags: {tags}

Please provide specific, actionable suggestions in the following areas:

1. DESCRIPTION IMPROVEMENTS:
- What details could enhance the description?
- What aspects are missing?

2. CULTURAL CONTEXT:
- What additional cultural information should be included?
- What cultural connections could be explored?

3. RECOMMENDED TAGS:
- Suggest 5-8 relevant tags that are missing

4. RESEARCH QUESTIONS:
- What questions should be investigated further?
- What sources should be consulted?

5. RELATED TOPICS:
- What related cultural elements should be documented?
- What connections to other cultures exist?

Format your response clearly with bullet points under each section."""


def build_tags_prompt(
    title: str,
    description: str,
    category: str,
    cultural_context: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    return f"""Generate relevant, specific tags for this cultural heritage entry. Return ONLY a comma-separated list of 10-15 tags.

Title: {title}
Description: {description}
Category: {category}
Cultural Context: {cultural_context or NOT_PROVIDED}
Location: {country or NOT_PROVIDED}

Requirements:
- Focus on cultural aspects, practices, and traditions
- Include historical periods if relevant
- Add geographic/regional identifiers
- Include material types and techniques
- Add social and community aspects
- Use specific, searchable terms
- Avoid generic tags

Return format: tag1, tag2, tag3, ..."""


def build_analysis_prompt(entry: dict) -> str:
    return f"""Provide a comprehensive analysis of the cultural significance of this heritage entry:

Title: {entry.get('title', '')}
Description: {entry.get('description', '')}
Category: {entry.get('category') or 'Other'}
Cultural Context: {entry.get('cultural_context') or NOT_PROVIDED}
Historical Period: {entry.get('historical_period') or NOT_PROVIDED}
Location: {_location(entry)}
Region: {entry.get('location_region') or 'Unknown'}

Please provide a detailed analysis covering:

1. CULTURAL IMPORTANCE
- What makes this culturally significant?
- What values or beliefs does it represent?

2. HISTORICAL CONTEXT
- How has this evolved over time?
- What historical events influenced it?

3. SOCIAL SIGNIFICANCE
- How does it impact the community?
- What role does it play in society?

4. PRESERVATION CHALLENGES
- What threatens its continuation?
- What preservation efforts are needed?

5. EDUCATIONAL VALUE
- What can we learn from this?
- How can this knowledge be shared?

6. CONTEMPORARY RELEVANCE
- How is it relevant today?
- How is it adapting to modern times?

Provide a thoughtful, respectful analysis that honors the cultural sensitivity of the subject."""
