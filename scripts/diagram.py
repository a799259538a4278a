# /// script
# dependencies = ["diagrams"]
# ///
from diagrams import Cluster, Diagram
from diagrams.aws.compute import Lambda
from diagrams.aws.database import Dynamodb
from diagrams.aws.general import Client
from diagrams.aws.network import APIGateway

with Diagram(
    "Serverless WebSocket Chat",
    show=False,
    filename="assets/websocket_chat",
    direction="LR",
):
    clients = [Client("Client A"), Client("Client B")]
    api_gateway = APIGateway("WebSocket API\n($request.body.action)")
    connections = Dynamodb("simplechat_connections")

    with Cluster("Route handlers"):
        connect = Lambda("$connect")
        disconnect = Lambda("$disconnect")
        sendmessage = Lambda("sendmessage")

    for client in clients:
        client >> api_gateway

    api_gateway >> [connect, disconnect, sendmessage]
    connect >> connections
    disconnect >> connections
    sendmessage >> connections
    # pushes back to clients through the management API
    sendmessage >> api_gateway
