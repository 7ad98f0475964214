"""
LLM prompts used throughout the application.

All prompts are centralized here for easy maintenance and consistency.
"""

# ============================================================================
# Summary Prompts
# ============================================================================

SHORT_SUMMARY_PROMPT_TEMPLATE = """Summarize this YouTube video transcript in 3-4 bullet points, focusing on the main ideas:
{transcript}"""

DETAILED_SUMMARY_PROMPT_TEMPLATE = """Provide a detailed summary of this YouTube video transcript, including key points, examples, and important details:
{transcript}"""

# ============================================================================
# Chat Prompts
# ============================================================================

VIDEO_CONTEXT_HEADER = "=== VIDEO CONTEXT ===\n"
VIDEO_CONTEXT_FOOTER = "=== END OF VIDEO CONTEXT ===\n\n"
DETAILED_SUMMARY_SECTION = "\n## Detailed Summary\n{detailed_summary}\n\n"
TRANSCRIPT_SECTION = "\n## Full Transcript\n{transcript}\n\n"

NO_VIDEO_CONTEXT = "(No video has been loaded yet.)\n\n"

CHAT_SYSTEM_MESSAGE_TEMPLATE = """You are a helpful AI assistant discussing a video. Base your responses on the following context:

{context}
Instructions:
1. If video context is provided above:
   - Use it to give detailed and accurate responses
   - Reference specific parts of the video when relevant
   - Be clear about which part of the video you're discussing
2. If no video context is provided:
   - Inform the user that no video has been loaded yet
   - Suggest loading a video to get better answers
3. Keep responses clear and well-structured:
   - Break down complex explanations into points
   - Use examples from the video when possible
   - Highlight key concepts or timestamps
4. Always be clear about whether you're using video context in your response
5. If asked about something not in the video:
   - Clearly state that it's not covered in the video
   - Provide a general answer if possible
6. Format code examples properly if discussing programming topics"""

# ============================================================================
# Saved Summary Layout
# ============================================================================

SUMMARY_MARKDOWN_TEMPLATE = """# {title}

**Channel:** {channel}
**Duration:** {duration}
**URL:** {url}

## Short Summary

{short_summary}

## Detailed Summary

{detailed_summary}
"""
