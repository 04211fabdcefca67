ERRORS = {
  "E_MALFORMED_RECORD": "Text is not a valid chunk record",
  "E_INCONSISTENT_TOTAL": "Record declares a different total than first seen for its file",
  "E_INDEX_CONFLICT": "Chunk index already claimed by a different file",
  "E_PAYLOAD_CONFLICT": "Same file and index seen with different payload",
  "E_MULTIPLE_FILES": "Records from more than one file in this batch",
  "E_INCOMPLETE": "Chunk set is missing indices",
  "E_CORRUPT_PAYLOAD": "Concatenated payload is not valid base64",
  "E_NO_RECORDS": "No valid chunk records found",
}
