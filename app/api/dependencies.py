"""
app/api/dependencies.py

Upload validation for the CSV clustering endpoint.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

POINTS_CSV_CONTENT_TYPES = frozenset(
    {
        "text/csv",
        "text/plain",
        "application/csv",
        "application/vnd.ms-excel",
    }
)


def get_points_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Accept a non-empty point table uploaded as CSV.

    The file must end in ``.csv`` or carry a CSV-like MIME type. The stream
    is rewound after the emptiness probe so the router reads it whole.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()

    if not filename.endswith(".csv") and content_type not in POINTS_CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a CSV point table, got {file.filename!r} ({content_type or 'no type'}).",
        )

    if not file.file.read(1):
        raise HTTPException(status_code=422, detail="Uploaded point table is empty.")
    file.file.seek(0)

    return file
