# API client for the marketplace chat endpoints
import requests
from typing import Dict, Any, List, Optional

class APIError(Exception):
    """Exception raised for API errors"""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API Error ({status_code}): {detail}")

def handle_response(response: requests.Response) -> Dict[str, Any]:
    """Process API response and handle errors"""
    if 200 <= response.status_code < 300:
        if response.status_code == 204:  # No content
            return {}
            
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}
    else:
        try:
            error_data = response.json()
            detail = error_data.get("error") or error_data.get("detail") or "Unknown error"
        except ValueError:
            detail = response.text or "Unknown error"
            
        raise APIError(response.status_code, detail)

class ChatAPI:
    """HTTP access to /chat/send and /chat/sync"""
    
    def __init__(self, api_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
    
    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(f"{self.api_url}{endpoint}", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise APIError(0, f"Request failed: {str(e)}") from e
        return handle_response(response)
    
    def send(
        self,
        sender_id: str,
        text: str,
        conversation_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Send a message; returns {success, conversationId, messageId}"""
        payload = {
            "senderId": sender_id,
            "text": text
        }
        
        if conversation_id:
            payload["conversationId"] = conversation_id
            
        if listing_id:
            payload["listingId"] = listing_id
            
        if recipient_id:
            payload["recipientId"] = recipient_id
        
        return self._post("/chat/send", payload)
    
    def sync(self, user_id: str) -> List[Dict[str, Any]]:
        """Get the full inbox snapshot for a user"""
        data = self._post("/chat/sync", {"userId": user_id})
        conversations = data.get("conversations")
        if not isinstance(conversations, list):
            raise APIError(200, "Sync response has no conversations list")
        return conversations
    
    def close(self) -> None:
        self.session.close()
