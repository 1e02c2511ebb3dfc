"""
Services package - Core business logic and integrations

Organized by domain responsibility:

Pipeline (Reel Generation Flow):
    - pipeline: Project status state machine and stage operations
    - timeline: Timestamp alignment and scene editing
    - captions: SRT generation
    - assembly: ffmpeg filter graph construction and rendering

Infrastructure (Technical Concerns):
    - providers: Text, research, image, video and transcription backends
    - storage: Project persistence

Architecture Principles:
    - Dependency Injection: Stages receive repository, providers and credentials
    - Async-first: All I/O operations use async/await
    - Immutable timelines: Every stage builds a new Timeline
"""
