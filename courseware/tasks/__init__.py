# Tasks package
