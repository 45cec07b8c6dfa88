from storages.backends.s3boto3 import S3Boto3Storage


class DocumentS3Storage(S3Boto3Storage):
    # Document names already carry a unique prefix; never let S3 silently
    # replace an existing reading with a new upload.
    file_overwrite = False
    default_acl = "private"
    querystring_auth = True
