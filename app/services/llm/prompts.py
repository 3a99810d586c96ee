from __future__ import annotations

SUMMARY_SYSTEM = """You are an expert educational content summarizer.
Create clear, comprehensive, and exam-oriented summaries.
Be faithful to meaning; do not invent facts.
Ignore stage directions like [Music], [Laughter], filler, repeated caption artifacts.
"""

SUMMARY_USER_TEMPLATE = """Analyze the following video transcript and create a comprehensive, well-structured summary.

Transcript:
{transcript}

Instructions:
- Create a clear, concise summary (200-300 words)
- Organize into logical paragraphs
- Focus on main concepts and key takeaways
- Use professional, academic language
- Make it exam-ready and study-friendly

Summary:"""

KEY_POINTS_SYSTEM = """You are an expert at extracting key educational points.
Output MUST be valid JSON only. No markdown, no commentary.
"""

KEY_POINTS_USER_TEMPLATE = """Analyze this educational video transcript and extract the most important learning points.

Transcript:
{transcript}

Instructions:
- Extract 5-8 key learning points
- Each point should be clear and actionable
- Focus on concepts, definitions, and important facts
- Make them exam-oriented and memorable
- Return a JSON array with this exact shape: [{{"point": "...", "timestamp": "general"}}]

Key Points:"""

QUIZ_SYSTEM = """You are an expert quiz creator.
Generate educational, accurate questions based strictly on the provided content.
Output MUST be valid JSON only. No markdown, no commentary.
"""

QUIZ_USER_TEMPLATE = """Create exactly 10 multiple-choice quiz questions based STRICTLY on the content from this video transcript.

Transcript:
{transcript}

Requirements (strict):
- Create EXACTLY 10 questions
- Each question must have exactly 4 options
- Questions must be based ONLY on content from the transcript
- Include a mix of difficulty levels (3 easy, 5 medium, 2 hard)
- correctAnswer is the 0-based index (0-3) of the correct option; only one option is correct
- Provide a brief explanation for each answer

Return JSON with this exact shape:
{{
  "questions": [
    {{
      "question": "What is...",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,
      "explanation": "Brief explanation",
      "difficulty": "medium"
    }}
  ]
}}
"""
