"""The storage interface and the local file-system backend."""