"""aobridge REST API (FastAPI).

Single HTTP surface for the Telegram intake pipeline, permanent-storage
uploads, AO messaging and the auxiliary lookups. Start with
`aobridge serve`.
"""
