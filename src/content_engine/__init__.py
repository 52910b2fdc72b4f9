# Content Engine
"""
Blog generation and enhancement modules:
- content_writer: GPT-powered post generation with template fallback
- image_search: Pexels stock photo search
- enhancer: idempotent CTA, citation, image and schema insertion
- publisher: blog post storage and the generation pipeline
- scheduler: timed and manual generation runs, keyword pool
"""
