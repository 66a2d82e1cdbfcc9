"""Running-order processing: baseline rules and sheet generation."""
