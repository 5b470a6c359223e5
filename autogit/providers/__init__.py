"""Provider drivers for the text-generation backend."""
