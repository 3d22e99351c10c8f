"""WhatsApp Auto-Replier — an AI cruise consultant behind a Vonage webhook.

Architecture Overview
=====================

Every inbound WhatsApp message runs through one linear pipeline:

1. **Webhook** (``POST /vonage/inbound``) — parses the Vonage callback,
   classifies it (text / non-text / status / unrecognized) and always
   acknowledges with 200 once the body is valid JSON.

2. **Reply generator** — one Gemini ``generate_content`` call per text
   message, with the Athens Day Cruise knowledge base embedded in the
   system instruction and Google Search enabled for anything dynamic.
   Backend failures turn into a fixed apology reply.

3. **WhatsApp sender** — posts the reply back through the Vonage Messages
   API (plain text, or an approved template with an image header).

Key Design Decisions
--------------------
- **No shared mutable state**: the knowledge base and system instruction are
  built once at startup and only read afterwards.
- **Explicit wiring**: both services are created in the FastAPI lifespan and
  handed to routes through ``app.state``; nothing is a lazy module global.
- **No deduplication or retries**: a redelivered webhook produces a second
  reply.
- **Dual interface**: FastAPI server (production) + CLI chat loop (testing).

Package Structure
-----------------
- ``auto_replier/config.py`` — configuration from env / ``.env`` / SSM
- ``auto_replier/knowledge.py`` — JSON knowledge base loader
- ``auto_replier/prompts.py`` — system instruction template
- ``auto_replier/server.py`` — FastAPI application and lifespan
- ``auto_replier/main.py`` — CLI chat interface
- ``auto_replier/services/`` — Gemini generator, Vonage sender, metrics
- ``auto_replier/api/`` — webhook routes and Pydantic schemas
"""
