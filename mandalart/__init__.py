"""
mandalart Application Package

Directory Structure:
├── domain/            # Entities, change intents, errors, events, specifications
├── application/       # Node repository, grid projector, tree mutator, approvals
├── storage/           # Project store port and the in-memory implementation
├── routers/           # FastAPI route handlers
├── schemas/           # Pydantic models for API requests/responses
│   └── api_schemas.py # HTTP request/response structures
└── config.py          # Application configuration

Model Types Clarification:
1. **Domain Entities** (mandalart.domain.entities): nodes, log entries and
   approval requests as delivered by the project store
2. **API Schemas** (mandalart.schemas.api_schemas): HTTP request/response bodies

A project is a tree of nodes laid out as recursive 3x3 grids. Each node sits in
one of the eight slots around its parent and can be zoomed into as the center
of its own grid.
"""
