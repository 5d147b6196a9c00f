"""Excel intake: uploaded workbooks, their metadata and the rows parsed from them."""
