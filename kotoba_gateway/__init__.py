"""KotobaID backend - Vertex AI Gemini gateway."""
