"""Resume Text Extractor.

Extracts plain text from uploaded resumes (PDF, DOCX, TXT, RTF), falling
back from cloud OCR to the PDF text layer to local Tesseract OCR of the
rendered pages so that scanned documents still yield text.
"""
