from __future__ import annotations

from theo_notes.services.stream_parser import Category

POINTS_PROMPT_TEMPLATE = """You are an expert at extracting actionable insights from educational content.

Given the YouTube video titled "{title}", extract:
1. **Action Items**: Specific things the viewer should DO after watching
2. **Key Takeaways**: Important facts or concepts to REMEMBER
3. **Insights**: Deeper understanding or "aha moments" from the content

IMPORTANT: For each point, also provide the timestamp (in seconds from the start of the video) where this point is discussed. This helps users verify the information.

Rules:
- Be specific and concise (max 1-2 sentences per point)
- Focus on practical, implementable advice
- Skip filler content, intros, outros, sponsor segments
- Each point should be self-contained and understandable without context
- Aim for 5-15 total points depending on content length
- Timestamps should be ACCURATE to where the point is actually discussed in the video
"""

# Gemini responseSchema (OpenAPI subset) for {"points": [...]}
POINTS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "points": {
            "type": "ARRAY",
            "description": "Array of actionable points extracted from the video",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "content": {
                        "type": "STRING",
                        "description": "The actionable insight or key takeaway",
                    },
                    "category": {
                        "type": "STRING",
                        "enum": [c.value for c in Category],
                        "description": "Type of point: action (do something), remember (key fact), insight (aha moment)",
                    },
                    "timestamp": {
                        "type": "INTEGER",
                        "description": "Timestamp in seconds where this point is discussed",
                    },
                },
                "required": ["content", "category"],
                "propertyOrdering": ["content", "category", "timestamp"],
            },
        }
    },
    "required": ["points"],
}

BLOG_PROMPT_TEMPLATE = """You are a skilled tech blogger and writer. Given the YouTube video titled "{title}" by Theo (t3dotgg), write a comprehensive, in-depth blog article that covers ALL the content discussed in the video.

WRITING GUIDELINES:
- Write in a professional but engaging tone, similar to a high-quality tech blog post
- Use Markdown formatting with proper headings (##, ###), bold, italic, code blocks, and lists
- Start with a compelling introduction that hooks the reader
- Break down the content into logical sections with clear headings
- Include technical details, code concepts, and examples where relevant
- Include the speaker's opinions/takes and frame them appropriately
- End with a strong conclusion summarizing the key message
- Aim for a thorough, detailed article (1000-2500 words depending on video length)
- Do NOT include a title heading (# Title), the title is shown separately
- Do NOT mention "in this video", write it as a standalone article

FORMAT:
Write the article in clean Markdown. Use ## for main sections, ### for subsections.
Include code examples in fenced code blocks with language tags when relevant.
Use > blockquotes for notable quotes or hot takes from the video.
"""


def points_prompt(title: str) -> str:
    return POINTS_PROMPT_TEMPLATE.format(title=title)


def blog_prompt(title: str) -> str:
    return BLOG_PROMPT_TEMPLATE.format(title=title)
