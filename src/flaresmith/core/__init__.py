"""Format-independent building blocks of the Flare conversion pipeline."""
