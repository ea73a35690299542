"""HTTP routers of the Spreadsheet Combiner API."""
