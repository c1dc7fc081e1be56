#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Service descriptors and canned responses shared by the tests."""

from dataclasses import dataclass
from datetime import UTC, datetime

from aws_async_core.exceptions import ClientError
from aws_async_core.shapes import (
    BLOB,
    BOOLEAN,
    INTEGER,
    LONG,
    STRING,
    TIMESTAMP,
    Location,
    Member,
    OperationShape,
    Pagination,
    ServiceShape,
    list_of,
    map_of,
    structure,
)


@dataclass(kw_only=True)
class QueueDoesNotExist(ClientError):
    pass


# json
SQS = ServiceShape(
    name="SQS",
    protocol="json",
    api_version="2012-11-05",
    endpoint_prefix="sqs",
    target_prefix="AmazonSQS",
    errors={"QueueDoesNotExist": QueueDoesNotExist},
)

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/my-queue"

DELETE_QUEUE = OperationShape(
    name="DeleteQueue",
    input=structure(
        "DeleteQueueRequest",
        {"QueueUrl": Member(target=STRING, required=True)},
    ),
)

LIST_QUEUES = OperationShape(
    name="ListQueues",
    input=structure(
        "ListQueuesRequest",
        {
            "QueueNamePrefix": Member(target=STRING),
            "NextToken": Member(target=STRING),
            "MaxResults": Member(target=INTEGER),
        },
    ),
    output=structure(
        "ListQueuesResult",
        {
            "QueueUrls": Member(target=list_of("QueueUrlList", STRING)),
            "NextToken": Member(target=STRING),
        },
    ),
    pagination=Pagination(
        input_token="NextToken",
        output_token="NextToken",
        result_key="QueueUrls",
        limit_key="MaxResults",
    ),
)

GET_QUEUE_ATTRIBUTES = OperationShape(
    name="GetQueueAttributes",
    input=structure(
        "GetQueueAttributesRequest",
        {
            "QueueUrl": Member(target=STRING, required=True),
            "AttributeNames": Member(target=list_of("AttributeNameList", STRING)),
        },
    ),
    output=structure(
        "GetQueueAttributesResult",
        {"Attributes": Member(target=map_of("QueueAttributeMap", STRING, STRING))},
    ),
)

# query
SNS = ServiceShape(
    name="SNS",
    protocol="query",
    api_version="2010-03-31",
    endpoint_prefix="sns",
)

_TAG = structure(
    "Tag",
    {
        "Key": Member(target=STRING, required=True),
        "Value": Member(target=STRING, required=True),
    },
)

CREATE_TOPIC = OperationShape(
    name="CreateTopic",
    input=structure(
        "CreateTopicInput",
        {
            "Name": Member(target=STRING, required=True),
            "Attributes": Member(
                target=map_of("TopicAttributesMap", STRING, STRING)
            ),
            "Tags": Member(target=list_of("TagList", _TAG)),
        },
    ),
    output=structure("CreateTopicResponse", {"TopicArn": Member(target=STRING)}),
)

# ec2
EC2 = ServiceShape(
    name="EC2",
    protocol="ec2",
    api_version="2016-11-15",
    endpoint_prefix="ec2",
)

_REGION = structure(
    "Region",
    {
        "RegionName": Member(target=STRING, location_name="regionName"),
        "Endpoint": Member(target=STRING, location_name="regionEndpoint"),
    },
)

DESCRIBE_REGIONS = OperationShape(
    name="DescribeRegions",
    input=structure(
        "DescribeRegionsRequest",
        {
            "RegionNames": Member(
                target=list_of(
                    "RegionNameStringList", STRING, member_name="RegionName"
                ),
                query_name="RegionName",
            ),
            "AllRegions": Member(target=BOOLEAN),
            "DryRun": Member(target=BOOLEAN, location_name="dryRun"),
        },
    ),
    output=structure(
        "DescribeRegionsResult",
        {
            "Regions": Member(
                target=list_of("RegionList", _REGION, member_name="item"),
                location_name="regionInfo",
            ),
        },
    ),
)

# rest-xml
S3_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"

S3 = ServiceShape(
    name="S3",
    protocol="rest-xml",
    api_version="2006-03-01",
    endpoint_prefix="s3",
    xml_namespace=S3_NAMESPACE,
)

GET_OBJECT = OperationShape(
    name="GetObject",
    http_method="GET",
    request_uri="/{Bucket}/{Key+}",
    input=structure(
        "GetObjectRequest",
        {
            "Bucket": Member(target=STRING, location=Location.URI, required=True),
            "Key": Member(target=STRING, location=Location.URI, required=True),
            "Range": Member(target=STRING, location=Location.HEADER),
            "VersionId": Member(
                target=STRING, location=Location.QUERY, location_name="versionId"
            ),
        },
    ),
    output=structure(
        "GetObjectOutput",
        {
            "Body": Member(target=BLOB, location=Location.PAYLOAD, streaming=True),
            "ContentLength": Member(
                target=LONG, location=Location.HEADER, location_name="Content-Length"
            ),
            "LastModified": Member(
                target=TIMESTAMP,
                location=Location.HEADER,
                location_name="Last-Modified",
            ),
            "Metadata": Member(
                target=map_of("Metadata", STRING, STRING),
                location=Location.PREFIX_HEADERS,
                location_name="x-amz-meta-",
            ),
        },
    ),
)

PUT_OBJECT = OperationShape(
    name="PutObject",
    http_method="PUT",
    request_uri="/{Bucket}/{Key+}?x-id=PutObject",
    input=structure(
        "PutObjectRequest",
        {
            "Bucket": Member(target=STRING, location=Location.URI, required=True),
            "Key": Member(target=STRING, location=Location.URI, required=True),
            "Body": Member(target=BLOB, location=Location.PAYLOAD, streaming=True),
            "ContentLength": Member(
                target=LONG, location=Location.HEADER, location_name="Content-Length"
            ),
            "ContentType": Member(
                target=STRING, location=Location.HEADER, location_name="Content-Type"
            ),
            "Metadata": Member(
                target=map_of("Metadata", STRING, STRING),
                location=Location.PREFIX_HEADERS,
                location_name="x-amz-meta-",
            ),
        },
    ),
    output=structure(
        "PutObjectOutput",
        {
            "ETag": Member(target=STRING, location=Location.HEADER),
        },
    ),
)

_OBJECT = structure(
    "Object",
    {
        "Key": Member(target=STRING),
        "Size": Member(target=LONG),
        "LastModified": Member(target=TIMESTAMP),
    },
)

LIST_OBJECTS_V2 = OperationShape(
    name="ListObjectsV2",
    http_method="GET",
    request_uri="/{Bucket}?list-type=2",
    input=structure(
        "ListObjectsV2Request",
        {
            "Bucket": Member(target=STRING, location=Location.URI, required=True),
            "Prefix": Member(
                target=STRING, location=Location.QUERY, location_name="prefix"
            ),
            "ContinuationToken": Member(
                target=STRING,
                location=Location.QUERY,
                location_name="continuation-token",
            ),
        },
    ),
    output=structure(
        "ListObjectsV2Output",
        {
            "Contents": Member(
                target=list_of("ObjectList", _OBJECT), flattened=True
            ),
            "IsTruncated": Member(target=BOOLEAN),
            "NextContinuationToken": Member(target=STRING),
            "KeyCount": Member(target=INTEGER),
        },
    ),
    pagination=Pagination(
        input_token="ContinuationToken",
        output_token="NextContinuationToken",
        result_key="Contents",
        more_results="IsTruncated",
    ),
)

_CREATE_BUCKET_CONFIGURATION = structure(
    "CreateBucketConfiguration",
    {"LocationConstraint": Member(target=STRING)},
)

CREATE_BUCKET = OperationShape(
    name="CreateBucket",
    http_method="PUT",
    request_uri="/{Bucket}",
    input=structure(
        "CreateBucketRequest",
        {
            "Bucket": Member(target=STRING, location=Location.URI, required=True),
            "ACL": Member(
                target=STRING, location=Location.HEADER, location_name="x-amz-acl"
            ),
            "CreateBucketConfiguration": Member(
                target=_CREATE_BUCKET_CONFIGURATION,
                location=Location.PAYLOAD,
                location_name="CreateBucketConfiguration",
            ),
        },
    ),
    output=structure(
        "CreateBucketOutput",
        {"Location": Member(target=STRING, location=Location.HEADER)},
    ),
)

# rest-json
LAMBDA = ServiceShape(
    name="Lambda",
    protocol="rest-json",
    api_version="2015-03-31",
    endpoint_prefix="lambda",
)

_ALIAS_CONFIGURATION = {
    "AliasArn": Member(target=STRING),
    "Name": Member(target=STRING),
    "FunctionVersion": Member(target=STRING),
    "Description": Member(target=STRING),
}

CREATE_ALIAS = OperationShape(
    name="CreateAlias",
    http_method="POST",
    request_uri="/2015-03-31/functions/{FunctionName}/aliases",
    input=structure(
        "CreateAliasRequest",
        {
            "FunctionName": Member(
                target=STRING, location=Location.URI, required=True
            ),
            "Name": Member(target=STRING, required=True),
            "FunctionVersion": Member(target=STRING, required=True),
            "Description": Member(target=STRING),
        },
    ),
    output=structure(
        "AliasConfiguration",
        {
            **_ALIAS_CONFIGURATION,
            "StatusCode": Member(target=INTEGER, location=Location.STATUS),
            "RequestId": Member(
                target=STRING,
                location=Location.HEADER,
                location_name="x-amzn-RequestId",
            ),
        },
    ),
)

LIST_ALIASES = OperationShape(
    name="ListAliases",
    http_method="GET",
    request_uri="/2015-03-31/functions/{FunctionName}/aliases",
    input=structure(
        "ListAliasesRequest",
        {
            "FunctionName": Member(
                target=STRING, location=Location.URI, required=True
            ),
            "Marker": Member(
                target=STRING, location=Location.QUERY, location_name="Marker"
            ),
            "MaxItems": Member(
                target=INTEGER, location=Location.QUERY, location_name="MaxItems"
            ),
            "Versions": Member(
                target=list_of("VersionList", STRING),
                location=Location.QUERY,
                location_name="Version",
            ),
        },
    ),
    output=structure(
        "ListAliasesResponse",
        {
            "NextMarker": Member(target=STRING),
            "Aliases": Member(
                target=list_of(
                    "AliasList", structure("AliasConfiguration", _ALIAS_CONFIGURATION)
                )
            ),
        },
    ),
    pagination=Pagination(
        input_token="Marker",
        output_token="NextMarker",
        result_key="Aliases",
        limit_key="MaxItems",
    ),
)


def sts_credentials_xml(
    operation: str,
    *,
    access_key_id: str = "ASIAROLE",
    expiration: datetime = datetime(2030, 1, 1, tzinfo=UTC),
) -> bytes:
    """A successful STS response carrying role credentials."""
    return f"""<{operation}Response xmlns="https://sts.amazonaws.com/doc/2011-06-15/">
  <{operation}Result>
    <Credentials>
      <AccessKeyId>{access_key_id}</AccessKeyId>
      <SecretAccessKey>role-secret</SecretAccessKey>
      <SessionToken>role-token</SessionToken>
      <Expiration>{expiration.strftime("%Y-%m-%dT%H:%M:%SZ")}</Expiration>
    </Credentials>
    <AssumedRoleUser>
      <AssumedRoleId>AROA:session</AssumedRoleId>
      <Arn>arn:aws:sts::123456789012:assumed-role/demo/session</Arn>
    </AssumedRoleUser>
  </{operation}Result>
  <ResponseMetadata>
    <RequestId>c6104cbe-af31-11e0-8154-cbc7ccf896c7</RequestId>
  </ResponseMetadata>
</{operation}Response>""".encode()
