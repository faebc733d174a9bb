"""Archive loading, transcoding, pagination and the reading session."""
