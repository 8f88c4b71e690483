"""Item creation, upload, deletion and listings."""
