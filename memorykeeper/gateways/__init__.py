"""
Provider Gateways

Boundary components wrapping the call contract of one external inference
provider each: Groq text generation, Hugging Face sentiment and emotion
classification, Replicate/Stability image generation, StreamElements/ElevenLabs
speech synthesis and AssemblyAI transcription.

Every gateway exposes ``invoke(input) -> output`` and raises a
``GatewayError`` subclass (see ``errors``) on failure. Gateways never retry;
retry policy belongs to the caller.

Modules:
    - base.py: ProviderGateway protocol and the shared HTTPGateway
    - text_generation.py, huggingface.py, image_generation.py, speech.py,
      transcription.py: concrete gateways
    - factory.py: GatewayFactory building gateways from AppConfig
    - errors.py: error taxonomy
"""
