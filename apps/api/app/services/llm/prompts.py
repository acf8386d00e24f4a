from __future__ import annotations

QUIZ_SYSTEM = """You are an expert educator who writes multiple-choice quizzes from video transcripts.

Hard rules:
- Questions must be answerable from the transcript alone; do not invent facts.
- Test understanding of the video's content, concepts, facts, or processes.
- Avoid subjective questions.
- Make options plausible but clearly distinguishable; only one is correct.
- Output MUST be valid JSON only. No markdown, no commentary.
"""

QUIZ_USER_TEMPLATE = """Create a {question_count}-question multiple choice quiz based on the following video transcript.

VIDEO TRANSCRIPT:
\"\"\"
{transcript}
\"\"\"

INSTRUCTIONS:
- Create exactly {question_count} questions about the content of the video transcript above
- Each question must have exactly {option_count} answer options
- correctAnswer is the 0-based index of the correct option
- Return only valid JSON in this exact format:

{{
  "questions": [
    {{
      "question": "Your question here?",
      "options": ["option1", "option2", "option3", "option4"],
      "correctAnswer": 0
    }}
  ]
}}
"""
