"""Download-and-save tasks for parsed items, with progress helpers."""