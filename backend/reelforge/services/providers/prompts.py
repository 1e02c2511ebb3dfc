"""
Prompt templates for the text-generation steps
"""

SCRIPT_SYSTEM = (
    "You write narration scripts for short vertical videos. "
    "Scripts are spoken aloud over a sequence of visuals, one visual per scene."
)

SCRIPT_PROMPT = """Write a narration script for a short video about: {topic}

Research notes:
{research}

Target length: about {target_duration} seconds of narration (roughly {target_words} words).
Tone: {tone}

Split the narration into scenes of one or two sentences. For every scene give a
short description of what should be on screen.

Respond with JSON only:
{{
  "fullText": "the complete narration",
  "scenes": [
    {{"id": "scene_1", "text": "narration for this scene", "visualDescription": "what the viewer sees"}}
  ]
}}"""

REFERENCE_LOOKUP_PROMPT = """List up to 5 well-known books, papers or articles that are good references for: {topic}

Respond with JSON only:
[{{"title": "...", "url": null, "snippet": "one sentence on why it is relevant"}}]"""

RESEARCH_SYNTHESIS_PROMPT = """Summarize the research below into notes for a short narrated video about: {topic}

Keep surprising facts, dates and concrete numbers. Plain prose, at most 250 words.

Research:
{material}"""

KEYWORD_PROMPT = """Extract 5 to 10 search keywords from this text. Respond with a JSON array of strings only.

{summary}"""

IMAGE_PROMPTS_PROMPT = """Write one image-generation prompt per scene of a short video.
Style guide: {style_guide}

Scenes:
{scenes}

Respond with JSON only:
[{{"sceneId": "...", "prompt": "..."}}]"""

HASHTAG_PROMPT = """Suggest 15 to 20 hashtags for a short video.
Topic: {topic}
Script excerpt: {excerpt}

Respond with a JSON array of strings, without the # sign."""

WEB_SEARCH_PROMPT = "Research the following topic for a short educational video. Include key facts and dates: {topic}"
