class AppMessage:
    INTERNAL_SERVER_ERROR = 'Internal server error'
    DELETE_BY_QUERY_UNSUPPORTED = ('DeleteByQuery endpoint only supports tagFilters, facetFilters, '
                                   'numericFilters and geoQuery condition')
    INDEX_NOT_FOUND = 'Index does not exist'
    INVALID_JSON_BODY = 'Request body is not valid JSON'
    BATCH_ACTION_NOT_SUPPORTED = 'Batch action not supported'
    INDEX_CLOSED = 'Index is closed'
