"""
Streamlit UI for the Retail Insights dashboard.

This provides a web interface for forecasting monthly product demand with
AI commentary, and a customer support chatbot that answers order questions.
All data comes from the rdash API.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Any

import plotly.graph_objects as go
import requests
import streamlit as st

from rdash.commentary import FALLBACK_CHAT_REPLY, GREETING, insight_card_html
from rdash.config import get_config
from rdash.constants import ForecastModel

ui_config = get_config().ui

# Page configuration
st.set_page_config(
    page_title=ui_config.page_title,
    page_icon=ui_config.page_icon,
    layout="wide",
    initial_sidebar_state="expanded"
)

# API configuration
API_BASE_URL = ui_config.api_base_url

# Custom CSS
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #4f46e5;
        text-align: center;
        margin-bottom: 2rem;
    }
    .insight-card {
        background-color: #f5f3ff;
        padding: 1rem;
        border-radius: 0.5rem;
        border-left: 4px solid #4f46e5;
        margin-bottom: 1rem;
    }
</style>
""", unsafe_allow_html=True)


def _error_detail(response: requests.Response) -> str:
    try:
        return response.json().get("detail", response.text)
    except ValueError:
        return response.text


def check_api_health() -> bool:
    """Check if the API is running and healthy."""
    try:
        response = requests.get(f"{API_BASE_URL}/health", timeout=5)
        return response.status_code == 200
    except requests.RequestException:
        return False


def get_data_status() -> Dict[str, Any]:
    """Outcome of the API's last order feed load."""
    try:
        response = requests.get(f"{API_BASE_URL}/data/status", timeout=10)
        if response.status_code == 200:
            return response.json()
    except requests.RequestException as e:
        return {"loaded": False, "error": str(e)}
    return {"loaded": False, "error": _error_detail(response)}


def get_products() -> List[str]:
    """Get list of products with sales history from the API."""
    try:
        response = requests.get(f"{API_BASE_URL}/products", timeout=10)
        if response.status_code == 200:
            return response.json().get("products", [])
    except requests.RequestException as e:
        st.warning(f"Could not load products: {e}")
    return []


def request_analysis(product: str, model: str) -> Dict[str, Any]:
    """Forecast a product with AI commentary; returns the payload or an error."""
    payload = {
        "product": product,
        "model": model,
        "client_id": st.session_state.client_id
    }
    try:
        response = requests.post(f"{API_BASE_URL}/analysis", json=payload)
    except requests.RequestException as e:
        return {"error": f"Network request failed: {e}"}

    if response.status_code == 200:
        return response.json()
    if response.status_code == 502:
        # Forecast is still available without commentary
        forecast = request_forecast(product, model)
        if "error" not in forecast:
            return {"forecast": forecast, "insights": None, "ai_error": _error_detail(response)}
    return {"error": _error_detail(response)}


def request_forecast(product: str, model: str) -> Dict[str, Any]:
    """Forecast a product without commentary."""
    try:
        response = requests.post(
            f"{API_BASE_URL}/forecast/product",
            json={"product": product, "model": model, "horizon": 1}
        )
    except requests.RequestException as e:
        return {"error": f"Network request failed: {e}"}

    if response.status_code == 200:
        return response.json()
    return {"error": _error_detail(response)}


def send_chat(message: str, history: List[Dict[str, Any]]) -> Optional[str]:
    """Send a chat message; returns None when the assistant is unavailable."""
    try:
        response = requests.post(
            f"{API_BASE_URL}/chat",
            json={"message": message, "history": history}
        )
    except requests.RequestException:
        return None

    if response.status_code == 200:
        return response.json()["reply"]["text"]
    return None


def create_forecast_chart(forecast: Dict[str, Any]) -> go.Figure:
    """Historical units with the next month forecast as a dashed continuation."""
    months = forecast["months"]
    history = forecast["history"]
    next_month = forecast["forecastMonths"][0]

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=months,
        y=history,
        mode="lines+markers",
        name="Units Sold",
        line=dict(color="#4f46e5", width=2)
    ))

    fig.add_trace(go.Scatter(
        x=[months[-1], next_month],
        y=[history[-1], forecast["demandForecast"]],
        mode="lines+markers",
        name="Forecast",
        line=dict(color="#f59e0b", width=2, dash="dash")
    ))

    fig.update_layout(
        title=f"Monthly Sales for {forecast['productName']}",
        height=450,
        showlegend=True,
        hovermode="x unified"
    )
    fig.update_xaxes(title_text="Month")
    fig.update_yaxes(title_text="Units")

    return fig


def show_insights(insights: Dict[str, str]) -> None:
    """Render the AI commentary as cards."""
    cards = [
        ("🧠 Reasoning", insights["reasoning"]),
        ("💲 Pricing Strategy", insights["pricingStrategy"]),
        ("📣 Marketing Suggestion", insights["marketingSuggestion"]),
        ("📦 Inventory Suggestion", insights["inventorySuggestion"]),
    ]

    col1, col2 = st.columns(2)
    for i, (title, text) in enumerate(cards):
        with (col1 if i % 2 == 0 else col2):
            st.markdown(insight_card_html(title, text), unsafe_allow_html=True)


def forecaster_page() -> None:
    """Product demand forecasting with AI commentary."""
    st.markdown('<h1 class="main-header">📈 Demand Forecaster</h1>', unsafe_allow_html=True)

    status = get_data_status()
    if not status.get("loaded"):
        st.error(f"Order data is not available: {status.get('error') or 'not loaded'}")
        st.stop()

    products = get_products()
    if not products:
        st.warning("No sales data is available for forecasting.")
        st.stop()

    product = st.sidebar.selectbox("Select Product", products, key="product_selectbox")

    model = st.sidebar.selectbox(
        "Forecasting Model",
        [m.value for m in ForecastModel],
        index=[m.value for m in ForecastModel].index(get_config().model.default_model),
        format_func=lambda value: ForecastModel(value).label,
        key="model_selectbox"
    )

    with st.spinner("Generating forecast and analysis..."):
        result = request_analysis(product, model)

    if "error" in result:
        st.error(result["error"])
        return

    if result.get("stale"):
        # A newer request from this session will render instead
        return

    forecast = result["forecast"]

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Demand Forecast (next month)", f"{forecast['demandForecast']} units")
    with col2:
        st.metric("Last Month", f"{forecast['history'][-1]} units")
    with col3:
        st.metric("Model Used", ForecastModel(forecast["modelUsed"]).label)

    if forecast["fellBack"]:
        st.info(
            f"{ForecastModel(forecast['modelRequested']).label} needs more history than is available; "
            f"{ForecastModel(forecast['modelUsed']).label} was used instead."
        )

    st.plotly_chart(create_forecast_chart(forecast), config={"displayModeBar": True, "responsive": True})

    st.markdown("### 🤖 AI Insights")
    if result.get("insights"):
        show_insights(result["insights"])
    else:
        st.warning(result.get("ai_error", "AI insights are not available."))


def chatbot_page() -> None:
    """Customer support chatbot."""
    st.markdown('<h1 class="main-header">💬 Support Chatbot</h1>', unsafe_allow_html=True)

    if "messages" not in st.session_state:
        st.session_state.messages = [
            {"sender": "bot", "text": GREETING, "timestamp": datetime.now().isoformat()}
        ]

    for message in st.session_state.messages:
        with st.chat_message("user" if message["sender"] == "user" else "assistant"):
            st.markdown(message["text"])

    query = st.chat_input("Ask about an order, e.g. 'Where is order 1001?'")
    if not query:
        return

    history = list(st.session_state.messages)
    st.session_state.messages.append(
        {"sender": "user", "text": query, "timestamp": datetime.now().isoformat()}
    )
    with st.chat_message("user"):
        st.markdown(query)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            reply = send_chat(query, history) or FALLBACK_CHAT_REPLY
        st.markdown(reply)

    st.session_state.messages.append(
        {"sender": "bot", "text": reply, "timestamp": datetime.now().isoformat()}
    )


def main():
    """Main Streamlit application."""

    if "client_id" not in st.session_state:
        st.session_state.client_id = uuid.uuid4().hex

    # Check API health
    if not check_api_health():
        st.error("🚨 API server is not running. Please start the API server first:")
        st.code("rdash api --serve")
        st.stop()

    st.sidebar.header("🔧 Navigation")
    page = st.sidebar.radio("Page", ["Forecaster", "Chatbot"], key="page_radio")

    if page == "Forecaster":
        forecaster_page()
    else:
        chatbot_page()


if __name__ == "__main__":
    main()
