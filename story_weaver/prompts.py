SYSTEM_INSTRUCTION = """You are a world-class novelist. Your task is to write a long, coherent, and engaging story based on a user's prompt. The story must be detailed, realistic, and avoid repetition. You will be writing the story in parts. I will provide you with the story written so far, and you must continue it seamlessly. IMPORTANT: Begin your response directly with the story text. Do not add any introductory phrases, conversational filler, or greetings like 'Sure,', 'Here is the next part,', or similar preamble. Go straight to the point and continue the narrative."""


OPENING_PROMPT_TEMPLATE = """Here is the story idea: "{premise}". Begin writing the first part of the story. Write approximately {chars_per_chunk} characters. Do not write the whole story, just the beginning."""


CONTINUATION_PROMPT_TEMPLATE = """Here is the original story idea: "{premise}".
Here is the story so far:
---
{context}
---
Please continue the story from where it left off. Introduce new plot points, deepen character development, and maintain a realistic and engaging narrative. Do not repeat previous events or descriptions. Write the next part of the story, approximately {chars_per_chunk} characters long. Do not summarize or end the story. Just write the next part."""


DETAILS_PROMPT_TEMPLATE = """Based on the following story, produce a short synopsis, a list of relevant social media hashtags, and a list of keywords/tags for categorization. Write all of them in {language}.

Story:
---
{story}
---

Provide the output in JSON format."""


STORY_DETAILS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "synopsis": {
            "type": "STRING",
            "description": "A short summary of the story.",
        },
        "hashtags": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Social media hashtags (e.g. #ScienceFiction).",
        },
        "tags": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Keyword tags (e.g. Cyberpunk).",
        },
    },
    "required": ["synopsis", "hashtags", "tags"],
}
