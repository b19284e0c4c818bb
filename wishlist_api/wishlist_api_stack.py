from aws_cdk import (
    Stack,
    Duration,
    CfnOutput,
    RemovalPolicy,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as apigw_integrations,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_dynamodb as dynamodb,
)
from constructs import Construct


class WishlistApiStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        stage: str = "dev",
        **kwargs,
    ) -> None:
        """Stack for the wishlist API, parameterised by environment stage.

        The `stage` parameter namespaces the table name so that several
        isolated environments (dev/stage/prod) can share an account and region.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.stage = stage

        # All games share one partition; the game id is the sort key.
        wishlist_table = dynamodb.Table(
            self,
            "WishlistTable",
            table_name=f"wishlist-{stage}",
            partition_key=dynamodb.Attribute(name="partitionKey", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="rowKey", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            removal_policy=RemovalPolicy.DESTROY if stage == "dev" else RemovalPolicy.RETAIN,
        )

        api_handler = _lambda.Function(
            self,
            "WishlistHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handler.lambda_handler",
            code=_lambda.Code.from_asset(
                "lambda",
                bundling={
                    "image": _lambda.Runtime.PYTHON_3_12.bundling_image,
                    "command": [
                        "bash",
                        "-c",
                        "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output",
                    ],
                },
            ),
            timeout=Duration.seconds(30),
            memory_size=256,
            environment={
                "WISHLIST_TABLE_NAME": wishlist_table.table_name,
                "LOG_LEVEL": "INFO",
            },
        )

        wishlist_table.grant_read_write_data(api_handler)

        logs.LogGroup(
            self,
            "WishlistHandlerLogGroup",
            log_group_name=f"/aws/lambda/{api_handler.function_name}",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY,
        )

        http_api = apigwv2.HttpApi(
            self,
            "WishlistHttpApi",
            description=f"Games wishlist API ({stage})",
            cors_preflight=apigwv2.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[
                    apigwv2.CorsHttpMethod.GET,
                    apigwv2.CorsHttpMethod.POST,
                    apigwv2.CorsHttpMethod.DELETE,
                    apigwv2.CorsHttpMethod.OPTIONS,
                ],
                allow_headers=["*"],
                max_age=Duration.days(1),
            ),
        )

        lambda_integration = apigw_integrations.HttpLambdaIntegration(
            "WishlistIntegration",
            handler=api_handler,
        )

        # Keep in sync with handler.ROUTES
        for path, method in (
            ("/", apigwv2.HttpMethod.GET),
            ("/games", apigwv2.HttpMethod.GET),
            ("/game", apigwv2.HttpMethod.POST),
            ("/game/{id}", apigwv2.HttpMethod.DELETE),
        ):
            http_api.add_routes(path=path, methods=[method], integration=lambda_integration)

        CfnOutput(
            self,
            "ApiUrl",
            value=http_api.url or "Deploying...",
            description="HTTP API Gateway URL",
        )

        CfnOutput(
            self,
            "WishlistTableName",
            value=wishlist_table.table_name,
            description="DynamoDB table name",
        )
