class AppConstants:
    # record identifiers
    INTERNAL_ID = '_id'
    OBJECT_ID = 'objectID'

    WILDCARD = '*'
    TASK_ID = 'algolite-task-id'
    STORAGE_DIR = '.algolite'

    # query parameters
    PARAMS = 'params'
    FACET_FILTERS = 'facetFilters'
    HITS_PER_PAGE = 'hitsPerPage'
    DEFAULT_PAGE = 0
    DEFAULT_HITS_PER_PAGE = 20

    # batch actions
    ADD_OBJECT = 'addObject'
    UPDATE_OBJECT = 'updateObject'
    DELETE_OBJECT = 'deleteObject'

    # recommendations
    FEATURED_SCORE = 'featuredScore'
    NAME = 'name'
    SCORE = '_score'

    # replica suffixes routing to a sorted view of the base index
    SORT_ASC = 'asc'
    SORT_DESC = 'desc'
