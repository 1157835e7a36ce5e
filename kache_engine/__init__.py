"""Console-script wrappers for the Kache analysis pipeline."""
